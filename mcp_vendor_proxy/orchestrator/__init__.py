from .client import OrchestratorClient

__all__ = ["OrchestratorClient"]
