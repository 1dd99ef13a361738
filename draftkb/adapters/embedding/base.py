from abc import ABC, abstractmethod

from draftkb.core.errors import EmbeddingProviderFailure


class EmbeddingProvider(ABC):
    name: str = "base"
    # remote providers are rate limited between batch items
    remote: bool = False

    def __init__(self, dim: int):
        self.dim = dim

    @abstractmethod
    def embed(self, text: str) -> list[float]: ...

    def check_dim(self, vec: list[float]) -> list[float]:
        if len(vec) != self.dim:
            raise EmbeddingProviderFailure(
                self.name, f"expected {self.dim} dimensions, got {len(vec)}"
            )
        return vec

    def close(self) -> None:
        pass
