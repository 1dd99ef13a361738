"""In-process embeddings via sentence-transformers.

Optional dependency (pip install .[local_ml]). The model is loaded on first
use; EMBED_DIM has to match the model's output size or every call falls back
to offline vectors.
"""

from draftkb.adapters.embedding.base import EmbeddingProvider
from draftkb.core.errors import EmbeddingProviderFailure


class LocalEmbedding(EmbeddingProvider):
    name = "local"

    def __init__(self, dim: int, model: str):
        super().__init__(dim)
        self.model_name = model
        self._model = None

    def _get_model(self):
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer  # optional dependency
            except Exception as e:
                raise EmbeddingProviderFailure(
                    self.name, "sentence-transformers is not installed. Install with: pip install .[local_ml]"
                ) from e
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed(self, text: str) -> list[float]:
        vec = self._get_model().encode([text], normalize_embeddings=True)[0].tolist()
        return self.check_dim(vec)
