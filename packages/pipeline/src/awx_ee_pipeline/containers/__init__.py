from .engine import ContainerEngine, ContainerRuntime, Volume

__all__ = ["ContainerEngine", "ContainerRuntime", "Volume"]
