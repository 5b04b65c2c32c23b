"""Reference classification and version pinning."""
