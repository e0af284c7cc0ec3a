"""Persistence of workflow instances."""

from .instance_store import InstanceStore, StoreError, default_state_dir, feature_filename

__all__ = ["InstanceStore", "StoreError", "default_state_dir", "feature_filename"]
