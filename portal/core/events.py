"""
事件通知中继模块

业务层通过 emit(event, room, payload) 广播生命周期事件，不关心是否送达。
实际推送（WebSocket 等）由订阅者实现；订阅者抛出的异常只记录日志，绝不影响业务操作。
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Dict, List

from loguru import logger

ADMIN_ROOM = "admin_room"


def user_room(principal_id: int) -> str:
    """单个用户的房间名"""
    return f"user_{principal_id}"


@dataclass
class Event:
    """一次广播的事件"""
    name: str
    room: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[Event], None]


class EventRelay:
    """
    进程内事件中继

    按事件名订阅；"*" 订阅所有事件。
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, event_name: str, listener: Listener) -> None:
        """注册订阅者"""
        with self._lock:
            self._listeners[event_name].append(listener)

    def unsubscribe(self, event_name: str, listener: Listener) -> None:
        """移除订阅者（不存在时忽略）"""
        with self._lock:
            listeners = self._listeners.get(event_name, [])
            if listener in listeners:
                listeners.remove(listener)

    def clear(self) -> None:
        """清空所有订阅者"""
        with self._lock:
            self._listeners.clear()

    def emit(self, event_name: str, room: str, payload: Dict[str, Any]) -> None:
        """广播事件（fire-and-forget）"""
        event = Event(name=event_name, room=room, payload=payload)
        with self._lock:
            listeners = list(self._listeners.get(event_name, [])) + list(self._listeners.get("*", []))

        logger.info(f"事件 {event_name} -> {room}")
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"事件订阅者处理失败: {event_name} -> {room}")


# 全局单例
event_relay = EventRelay()
