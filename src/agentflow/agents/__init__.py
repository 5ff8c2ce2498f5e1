"""Content-generation agents implementing the capability contract."""
