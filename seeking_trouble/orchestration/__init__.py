from .main import MiningOrchestrator

__all__ = ["MiningOrchestrator"]
