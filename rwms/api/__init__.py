# rwms/api/__init__.py
"""
API package bootstrap.

- 不做任何重导出；路由挂载由 `rwms/main.py` 管理
"""

__all__ = []
