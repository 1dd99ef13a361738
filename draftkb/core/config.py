from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "draftkb"
    ENV: str = "local"
    DATA_DIR: str = "./data"
    DB_PATH: str = "./data/draftkb.sqlite3"

    # uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # vector db
    # Backends:
    # - qdrant: Qdrant REST API (document + chunk collections)
    # - memory: in-process store, lost on restart (dev/tests)
    VECTOR_BACKEND: str = "qdrant"  # qdrant|memory
    VECTOR_DB_URL: str = "http://localhost:6333"
    VECTOR_COLLECTION: str = "draftkb"
    VECTOR_RECREATE_ON_DIM_MISMATCH: bool = True
    VECTOR_TIMEOUT: float = 10.0

    # embedding
    # Providers:
    # - offline: deterministic hash-seeded vectors (default, no network)
    # - openai: OpenAI embeddings API
    # - local: sentence-transformers (requires optional deps: pip install .[local_ml])
    EMBED_PROVIDER: str = "offline"  # offline|openai|local
    EMBED_MODEL: str = "text-embedding-3-small"
    LOCAL_EMBED_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
    EMBED_DIM: int = 1536  # shared by every stored vector
    EMBED_MAX_CHARS: int = 8000
    EMBED_BATCH_DELAY: float = 0.1  # seconds between remote calls
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str | None = None

    # chunking / summaries
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200
    SUMMARY_MAX_CHARS: int = 300
    SUMMARY_MAX_SENTENCES: int = 3
    TOPIC_COUNT: int = 5

    # retrieval knobs
    DOC_LIMIT: int = 5
    CHUNK_LIMIT: int = 8
    SIMILARITY_THRESHOLD: float = 0.0
    VECTOR_WEIGHT: float = 0.7
    TEXT_WEIGHT: float = 0.3

    # citations
    CITATION_PREVIEW_CHARS: int = 150
    SNIPPET_CHARS: int = 200

    # CORS (for browser-based UIs)
    # Comma-separated list of allowed origins.
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

settings = Settings()
