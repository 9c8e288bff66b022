"""Run code bundles inside disposable, resource-limited containers."""

__version__ = "0.1.0"
