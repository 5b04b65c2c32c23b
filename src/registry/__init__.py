"""Package sources: registry tarballs, URLs, local archives."""
