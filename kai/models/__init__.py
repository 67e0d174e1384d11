from kai.models.models import AlignmentRecord, CountConfig, CountResult, FilterConfig

__all__ = [
    "AlignmentRecord",
    "CountConfig",
    "CountResult",
    "FilterConfig",
]
