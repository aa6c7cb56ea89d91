from .activation import ActivationManager

__all__ = ["ActivationManager"]
