from .manager import GenerationState, IndexGeneration, IndexLifecycleManager

__all__ = ["GenerationState", "IndexGeneration", "IndexLifecycleManager"]
