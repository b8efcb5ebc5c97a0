"""Read OpenShift must-gather directories: resource listings, pod logs, machine configs and contexts."""

__version__ = "2.0.1"