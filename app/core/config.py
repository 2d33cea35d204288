from os import getenv

class Settings:
    DATABASE_URL = getenv("DATABASE_URL", "postgresql+psycopg://taskboard:taskboard@db:5432/taskboard")

    JWT_SECRET = getenv("JWT_SECRET", "dev-secret-change-in-prod")
    JWT_EXPIRE_MIN = int(getenv("JWT_EXPIRE_MIN", "15"))  # 15 minutes
    JWT_REFRESH_EXPIRE_MIN = int(getenv("JWT_REFRESH_EXPIRE_MIN", "43200"))  # 30 jours

    # Sur Docker, host.docker.internal pointe vers la machine hôte
    OLLAMA_BASE_URL = getenv("OLLAMA_BASE_URL", "http://host.docker.internal:11434")
    OLLAMA_MODEL = getenv("OLLAMA_MODEL", "mistral:7b")
    OLLAMA_TIMEOUT = int(getenv("OLLAMA_TIMEOUT", "180"))

    # Sessions d'édition abandonnées par le client
    SESSION_IDLE_TTL = int(getenv("SESSION_IDLE_TTL", "3600"))  # 1 heure

    LOG_LEVEL = getenv("LOG_LEVEL", "INFO")

settings = Settings()
