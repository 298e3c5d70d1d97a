"""
Property Store
键值属性存储 - 会话与续跑票据的持久化
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional
from pathlib import Path
from threading import Lock
import json
import logging
import os

from utils.exceptions import StorageError


logger = logging.getLogger(__name__)


class PropertyStore(ABC):
    """
    属性存储抽象基类
    所有值均为字符串, 结构化数据由调用方自行序列化
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """获取属性值, 不存在返回 None"""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """设置属性值"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """删除属性 (不存在时忽略)"""
        pass

    def get_json(self, key: str, default=None):
        """读取 JSON 序列化的属性; 损坏的值视为不存在"""
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring malformed property {key}: {e}")
            return default

    def set_json(self, key: str, value) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False, default=str))


class MemoryPropertyStore(PropertyStore):
    """
    内存属性存储
    适合测试与单进程运行
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = str(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)


class JsonFilePropertyStore(PropertyStore):
    """
    JSON 文件属性存储
    每次写入都原子替换整个文件, 进程退出后状态仍然可见
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def _load(self) -> Dict[str, str]:
        """加载属性文件"""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read property file {self.path}", {"error": str(e)}) from e
        if not isinstance(data, dict):
            raise StorageError(f"Property file {self.path} does not contain an object")
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, values: Dict[str, str]) -> None:
        """保存属性文件 (先写临时文件再替换)"""
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(values, f, ensure_ascii=False, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write property file {self.path}", {"error": str(e)}) from e

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            values = self._load()
            values[key] = str(value)
            self._save(values)

    def delete(self, key: str) -> None:
        with self._lock:
            values = self._load()
            if key in values:
                del values[key]
                self._save(values)

