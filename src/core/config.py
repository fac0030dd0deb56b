from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "PhotoShare Upload Worker"
    LOG_LEVEL: str = "DEBUG"
    ENVIRONMENT: str = "development"

    # Storage
    MEDIA_ROOT: str = "./media"
    STORE_TYPE: str = "file" # file, memory
    TOKEN_STORE_PATH: str = "./data/token_store.json"

    # Bridge (web-side collaborator)
    BRIDGE_MODE: str = "http" # http, callback
    BRIDGE_BASE_URL: str = "http://localhost:3000"
    BRIDGE_REQUEST_TIMEOUT: float = 10.0

    # Upload transport
    UPLOAD_BASE_URL: str = "http://localhost:54321"
    DEVICE_ID: str = "Python_Worker"

    class Config:
        env_file = ".env"

configs = Settings()
