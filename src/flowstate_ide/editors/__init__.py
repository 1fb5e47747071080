"""Editor capability table and loader exports."""

from .loader import EditorProfileLoader, ProfileLoadError, builtin_profiles
from .models import EditorProfile, IDEName, current_platform

__all__ = [
    "EditorProfile",
    "EditorProfileLoader",
    "IDEName",
    "ProfileLoadError",
    "builtin_profiles",
    "current_platform",
]
