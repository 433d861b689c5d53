from dataclasses import dataclass
import os
from dotenv import find_dotenv, load_dotenv

@dataclass(frozen=True)
class Config:
    listen_host: str
    listen_port: int
    target_host: str
    target_port: int
    settings_path: str
    log_path: str

    @property
    def target_url(self) -> str:
        return f"http://{self.target_host}:{self.target_port}"

def load_config():
    load_dotenv(find_dotenv(usecwd=True), override=True)
    return Config(
        listen_host=os.getenv("PROXY_LISTEN_HOST", "0.0.0.0"),
        listen_port=int(os.getenv("PROXY_LISTEN_PORT", 3443)),
        target_host=os.getenv("PROXY_TARGET_HOST", "localhost"),
        target_port=int(os.getenv("PROXY_TARGET_PORT", 3000)),
        settings_path=os.getenv("PROXY_SETTINGS_PATH", ".env"),
        log_path=os.getenv("PROXY_LOG_PATH", "proxy.log"),
    )
