"""TTS engine registry and factory."""

from narratore.models import EngineOptions
from narratore.tts.base import TTSEngine

ENGINE_REGISTRY: dict[str, type[TTSEngine]] = {}


def register_engine(name: str):
    """Decorator to register a TTS engine class."""
    def decorator(cls):
        ENGINE_REGISTRY[name] = cls
        return cls
    return decorator


def get_engine(name: str, options: EngineOptions) -> TTSEngine:
    """Instantiate a TTS engine by name with its engine-specific options."""
    if name not in ENGINE_REGISTRY:
        available = ", ".join(ENGINE_REGISTRY.keys()) or "(nessuno)"
        raise ValueError(f"Engine sconosciuto '{name}'. Disponibili: {available}")
    cls = ENGINE_REGISTRY[name]
    if not isinstance(options, cls.options_class):
        raise TypeError(
            f"L'engine '{name}' richiede {cls.options_class.__name__}, "
            f"ricevuto {type(options).__name__}"
        )
    return cls(options)


def list_engines() -> list[str]:
    """Return names of all registered engines."""
    return list(ENGINE_REGISTRY.keys())
