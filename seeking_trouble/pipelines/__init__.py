from .mining import MiningPipeline

__all__ = ["MiningPipeline"]
