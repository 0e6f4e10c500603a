"""
文件存储模块

业务层只记录和校验文件元数据，文件本体交给 FileStore。
默认实现把文件写到 settings.upload_dir 下。
"""
import uuid
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import settings
from .exceptions import InfrastructureException, NotFoundException


class LocalFileStore:
    """本地目录文件存储"""

    def __init__(self, root: Optional[str] = None):
        self._root = Path(root) if root else None

    @property
    def root(self) -> Path:
        # 延迟读取配置，测试中可以替换 upload_dir
        return self._root or Path(settings.upload_dir)

    def _resolve(self, path: str) -> Path:
        resolved = (self.root / path).resolve()
        if self.root.resolve() not in resolved.parents:
            raise NotFoundException(f"文件不存在: {path}")
        return resolved

    def save(self, content: bytes, filename: str) -> str:
        """保存文件，返回相对于存储根目录的路径"""
        suffix = Path(filename).suffix.lower()
        stored_name = f"{uuid.uuid4().hex}{suffix}"
        target = self.root / stored_name
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            logger.error(f"文件保存失败: {filename} | {exc}")
            raise InfrastructureException("文件保存失败") from exc
        logger.debug(f"文件已保存: {stored_name} ({len(content)} bytes)")
        return stored_name

    def read(self, path: str) -> bytes:
        """读取文件内容"""
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundException(f"文件不存在: {path}")
        return target.read_bytes()

    def delete(self, path: str) -> bool:
        """删除文件，文件不存在时返回 False"""
        target = self._resolve(path)
        if not target.is_file():
            return False
        try:
            target.unlink()
        except OSError as exc:
            logger.error(f"文件删除失败: {path} | {exc}")
            raise InfrastructureException("文件删除失败") from exc
        return True


# 全局单例
file_store = LocalFileStore()
