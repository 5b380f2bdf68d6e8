"""Client-side artifact state: version reconciliation and debounced autosave."""

from draftsmith.client.autosave import DebouncedSaver
from draftsmith.client.reconciler import Direction, Status, VersionReconciler
from draftsmith.client.view import ArtifactView

__all__ = ["ArtifactView", "DebouncedSaver", "Direction", "Status", "VersionReconciler"]
