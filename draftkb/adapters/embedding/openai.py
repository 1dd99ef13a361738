from draftkb.adapters.embedding.base import EmbeddingProvider
from draftkb.core.errors import EmbeddingProviderFailure

# models that accept a `dimensions` argument
_SHORTENABLE_PREFIX = "text-embedding-3"


class OpenAIEmbedding(EmbeddingProvider):
    name = "openai"
    remote = True

    def __init__(
        self,
        dim: int,
        model: str,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float = 30.0,
    ):
        super().__init__(dim)
        self.model = model
        self._client = None
        if api_key:
            from openai import OpenAI

            # retries are handled by falling back, not by the SDK
            self._client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    def embed(self, text: str) -> list[float]:
        if self._client is None:
            raise EmbeddingProviderFailure(self.name, "OPENAI_API_KEY is not set")
        kwargs = {"model": self.model, "input": text}
        if self.model.startswith(_SHORTENABLE_PREFIX):
            kwargs["dimensions"] = self.dim
        resp = self._client.embeddings.create(**kwargs)
        if not resp.data:
            raise EmbeddingProviderFailure(self.name, "empty embedding response")
        return self.check_dim(list(resp.data[0].embedding))

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
