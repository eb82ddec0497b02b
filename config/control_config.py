from __future__ import annotations
from dataclasses import dataclass

DEFAULT_RELEASE_API_URL = "https://api.github.com/repos/ggml-org/llama.cpp/releases/latest"
DEFAULT_USER_AGENT = "Llama-Control-Center"

@dataclass(frozen=True, slots=True)
class ControlConfig:
    # Release catalog / downloads
    release_api_url: str
    user_agent: str
    github_token: str | None
    request_timeout_s: float
    download_timeout_s: float
    max_redirects: int
    min_archive_bytes: int

    # Server supervision
    settle_delay_s: float
    stop_grace_s: float
    kill_timeout_s: float

    # Log ring buffer
    log_capacity: int
    log_flush_every: int

    model_extension: str = ".gguf"

    def validate(self) -> None:
        if not isinstance(self.release_api_url, str) or not self.release_api_url.startswith(("http://", "https://")):
            raise ValueError("ControlConfig.release_api_url must be an http(s) URL.")
        if not isinstance(self.user_agent, str) or not self.user_agent.strip():
            raise ValueError("ControlConfig.user_agent must be a non-empty string.")
        if self.github_token is not None and not isinstance(self.github_token, str):
            raise ValueError("ControlConfig.github_token must be a string or None.")
        if not isinstance(self.request_timeout_s, (int, float)) or self.request_timeout_s <= 0:
            raise ValueError("ControlConfig.request_timeout_s must be a positive number.")
        if not isinstance(self.download_timeout_s, (int, float)) or self.download_timeout_s <= 0:
            raise ValueError("ControlConfig.download_timeout_s must be a positive number.")
        if not isinstance(self.max_redirects, int) or self.max_redirects < 0:
            raise ValueError("ControlConfig.max_redirects must be a non-negative integer.")
        if not isinstance(self.min_archive_bytes, int) or self.min_archive_bytes < 0:
            raise ValueError("ControlConfig.min_archive_bytes must be a non-negative integer.")
        if not isinstance(self.settle_delay_s, (int, float)) or self.settle_delay_s < 0:
            raise ValueError("ControlConfig.settle_delay_s must be a non-negative number.")
        if not isinstance(self.stop_grace_s, (int, float)) or self.stop_grace_s <= 0:
            raise ValueError("ControlConfig.stop_grace_s must be a positive number.")
        if not isinstance(self.kill_timeout_s, (int, float)) or self.kill_timeout_s <= 0:
            raise ValueError("ControlConfig.kill_timeout_s must be a positive number.")
        if not isinstance(self.log_capacity, int) or self.log_capacity <= 0:
            raise ValueError("ControlConfig.log_capacity must be a positive integer.")
        if not isinstance(self.log_flush_every, int) or self.log_flush_every <= 0:
            raise ValueError("ControlConfig.log_flush_every must be a positive integer.")
        if not isinstance(self.model_extension, str) or not self.model_extension.startswith("."):
            raise ValueError("ControlConfig.model_extension must start with '.'.")

    @staticmethod
    def from_strings(
            release_api_url: str = DEFAULT_RELEASE_API_URL,
            user_agent: str = DEFAULT_USER_AGENT,
            github_token: str | None = None,
            request_timeout_s: float = 30.0,
            download_timeout_s: float = 60.0,
            max_redirects: int = 10,
            min_archive_bytes: int = 100,
            settle_delay_s: float = 1.0,
            stop_grace_s: float = 5.0,
            kill_timeout_s: float = 5.0,
            log_capacity: int = 1000,
            log_flush_every: int = 10,
            model_extension: str = ".gguf",
    ) -> "ControlConfig":
        cfg = ControlConfig(
            release_api_url=release_api_url,
            user_agent=user_agent,
            github_token=github_token or None,
            request_timeout_s=request_timeout_s,
            download_timeout_s=download_timeout_s,
            max_redirects=max_redirects,
            min_archive_bytes=min_archive_bytes,
            settle_delay_s=settle_delay_s,
            stop_grace_s=stop_grace_s,
            kill_timeout_s=kill_timeout_s,
            log_capacity=log_capacity,
            log_flush_every=log_flush_every,
            model_extension=model_extension,
            )
        cfg.validate()
        return cfg
