"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class ArchiverSettings(BaseSettings):
    """归档任务配置"""
    source_column: str = Field(default="A", description="源链接所在列")
    extracted_column: str = Field(default="B", description="提取出的直链写入列")
    result_column: str = Field(default="C", description="结果(存储引用或错误)写入列")
    start_row: int = Field(default=2, description="首个数据行 (1 起, 跳过表头)")

    time_ceiling_seconds: float = Field(default=300.0, description="软时间上限(秒)")
    hard_limit_seconds: float = Field(default=360.0, description="宿主环境硬性执行上限(秒)")
    continuation_delay_seconds: float = Field(default=60.0, description="续跑触发延迟(秒)")

    container_id: str = Field(default="archive", description="对象存储目标容器")
    collection_name: Optional[str] = Field(default=None, description="默认处理的记录表名")

    probe_timeout: float = Field(default=10.0, description="HEAD 探测超时(秒)")
    fetch_timeout: float = Field(default=30.0, description="下载超时(秒)")
    artifact_mime: str = Field(default="application/pdf", description="产物 MIME 类型")
    artifact_extension: str = Field(default=".pdf", description="产物扩展名")
    embed_tag: str = Field(default="embed", description="包装页中嵌入产物的标签名")
    failure_prefix: str = Field(default="ERROR: ", description="失败结果前缀")
    user_agent: str = Field(default="ArtifactArchiver/1.0", description="User Agent")
    entry_point: str = Field(default="run_archive_job", description="续跑调用的入口名")

    class Config:
        env_prefix = "ARCHIVER_"


class StorageSettings(BaseSettings):
    """本地存储配置"""
    data_dir: str = Field(default="./data", description="本地数据根目录")
    records_dir: Optional[str] = Field(default=None, description="CSV 记录表目录")
    objects_dir: Optional[str] = Field(default=None, description="对象存储目录")
    properties_file: Optional[str] = Field(default=None, description="属性存储文件")
    scheduler_file: Optional[str] = Field(default=None, description="调度票据文件")
    notifications_dir: Optional[str] = Field(default=None, description="通知日志目录")

    class Config:
        env_prefix = "STORAGE_"

    def _resolve(self, value: Optional[str], default_name: str) -> Path:
        if value:
            return Path(value)
        return Path(self.data_dir) / default_name

    @property
    def records_path(self) -> Path:
        return self._resolve(self.records_dir, "records")

    @property
    def objects_path(self) -> Path:
        return self._resolve(self.objects_dir, "objects")

    @property
    def properties_path(self) -> Path:
        return self._resolve(self.properties_file, "properties.json")

    @property
    def scheduler_path(self) -> Path:
        return self._resolve(self.scheduler_file, "triggers.json")

    @property
    def notifications_path(self) -> Path:
        return self._resolve(self.notifications_dir, "notifications")


class LoggingSettings(BaseSettings):
    """日志配置"""
    level: str = Field(default="INFO", description="日志级别")
    file: Optional[str] = Field(default=None, description="日志文件名 (可选)")
    use_rich: bool = Field(default=True, description="是否使用 Rich 输出")

    class Config:
        env_prefix = "LOG_"


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    archiver: ArchiverSettings = Field(default_factory=ArchiverSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            archiver=ArchiverSettings(),
            storage=StorageSettings(),
            logging=LoggingSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()
