"""On-call rotation and incident lifecycle service."""
