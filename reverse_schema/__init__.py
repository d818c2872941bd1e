"""reverse-schema - Rebuild a typed schema model from a live database catalog."""

__version__ = "0.1.0"

from .errors import ErrorKind, ReverseSchemaError
from .config import EngineConfig, build_engine_config
from .analysis.engine import EngineResult, ReverseEngineeringEngine, reverse_engineer

__all__ = [
    "__version__",
    "ErrorKind",
    "ReverseSchemaError",
    "EngineConfig",
    "build_engine_config",
    "EngineResult",
    "ReverseEngineeringEngine",
    "reverse_engineer",
]
