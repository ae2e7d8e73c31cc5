"""Label and field selector construction for class / phase queries."""

from typing import Optional

# Label carried by every resource a scenario manages.
CLASS_LABEL_KEY = "np.class"

PHASE_FIELD = "status.phase"


def label_selector(class_name: Optional[str] = None) -> str:
    """Selector matching one class, or everything when no class is given."""
    if class_name:
        return f"{CLASS_LABEL_KEY}={class_name}"
    return ""


def field_selector(phase: Optional[str] = None) -> str:
    """Pod field selector for a phase, or the empty selector."""
    if phase:
        return f"{PHASE_FIELD}={phase}"
    return ""
