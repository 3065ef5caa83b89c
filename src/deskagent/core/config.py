"""
核心配置模块
"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # 日志
    log_level: str = Field(default="INFO")
    log_path: str = Field(default="./logs")
    log_retention_days: int = Field(default=3)
    log_console_enabled: bool = Field(default=True)

    # 决策服务 (OpenAI 兼容接口)
    llm_base_url: Optional[str] = Field(default=None)
    llm_api_key: str = Field(default="")
    llm_model: str = Field(default="deepseek-chat")
    llm_timeout: float = Field(default=300.0)
    llm_temperature: float = Field(default=0.0)

    # OCR
    paddle_ocr_lang: str = Field(default="en")
    ocr_min_confidence: float = Field(default=0.0)
    ocr_merge_threshold: int = Field(default=10000)
    ocr_merge_h_proximity: int = Field(default=20)
    ocr_merge_v_proximity: int = Field(default=40)
    cursor_band_half_height: int = Field(default=23)

    # 感知
    dominant_color_count: int = Field(default=10)

    # 任务循环
    max_iterations: int = Field(default=40)
    iteration_delay: float = Field(default=1.0)
    action_delay: float = Field(default=0.1)
    state_update_delay: float = Field(default=1.0)
    # 子任务迭代耗尽时的处理: continue=进入下一个子任务, fail=任务标记为 broken
    exhausted_policy: str = Field(default="continue")

    # 线程池 (<=0 表示自动)
    io_thread_pool_size: int = Field(default=0)
    compute_thread_pool_size: int = Field(default=0)

    # 事件广播
    event_queue_size: int = Field(default=256)


# 全局配置实例
settings = Settings()
