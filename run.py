#!/usr/bin/env python
"""
门户后端启动脚本

用法:
    python run.py                    # 127.0.0.1:8000
    python run.py -p 8080 --host 0.0.0.0
    python run.py --reload           # 开发模式
    python run.py --init-db          # 只建表（业务库与计数器库）后退出
"""
import argparse
import asyncio
import shutil
from pathlib import Path

import uvicorn
from loguru import logger

ROOT_DIR = Path(__file__).parent


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="招聘与奖学金申请门户后端")
    parser.add_argument("-p", "--port", type=int, default=8000, help="端口 (默认 8000)")
    parser.add_argument("--host", default="127.0.0.1", help="监听地址 (默认 127.0.0.1)")
    parser.add_argument("--reload", action="store_true", help="代码变更后自动重启")
    parser.add_argument("--workers", type=int, default=1, help="工作进程数，--reload 时固定为 1")
    parser.add_argument("--init-db", action="store_true", help="创建数据表后退出，不启动服务")
    return parser.parse_args(argv)


def ensure_env_file() -> None:
    """没有 .env 时从 .env.example 复制一份；必须在加载配置之前调用"""
    env_file = ROOT_DIR / ".env"
    example = ROOT_DIR / ".env.example"
    if env_file.exists():
        return
    if example.exists():
        shutil.copy(example, env_file)
        logger.warning(f"已从 {example.name} 生成 .env，上线前请修改 SECRET_KEY")
    else:
        logger.warning("没有 .env，使用内置默认配置")


def prepare_storage() -> None:
    """按配置创建上传目录，并建好业务库与计数器库的表"""
    from portal.core.config import settings
    from portal.core.database import close_db, init_db

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    async def _init():
        try:
            await init_db()
        finally:
            await close_db()

    asyncio.run(_init())
    logger.info(f"存储已就绪: upload_dir={settings.upload_dir}")


def main(argv=None):
    args = parse_args(argv)
    ensure_env_file()
    prepare_storage()
    if args.init_db:
        return

    workers = 1 if args.reload else args.workers
    logger.info(
        f"监听 http://{args.host}:{args.port} reload={args.reload} workers={workers}"
    )
    uvicorn.run(
        "portal.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=workers,
        log_level="info",
    )


if __name__ == "__main__":
    main()
