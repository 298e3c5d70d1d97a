"""
Custom Exceptions
自定义异常类
"""


class ArchiverError(Exception):
    """归档任务基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ArchiverError):
    """配置错误 (启动校验失败)"""
    pass


class StorageError(ArchiverError):
    """存储错误"""
    pass


class RecordStoreError(StorageError):
    """记录表读写错误"""

    def __init__(self, message: str, collection: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.collection = collection


class ObjectStoreError(StorageError):
    """对象存储写入错误"""
    pass


class DuplicateObjectError(ObjectStoreError):
    """对象存储拒绝重名文件"""

    def __init__(self, message: str, name: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.name = name


class SchedulerError(ArchiverError):
    """调度服务错误"""
    pass


class SessionError(ArchiverError):
    """会话状态不一致"""

    def __init__(self, message: str, collection: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.collection = collection
