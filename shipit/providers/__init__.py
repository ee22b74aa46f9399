"""Provider drivers for shipit."""
