"""Core engine: domain models, ports, the VFS store and plan orchestration."""
