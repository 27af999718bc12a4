"""pkgvault Engine — Configuration, error hierarchy, structured logging."""
