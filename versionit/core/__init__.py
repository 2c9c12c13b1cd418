"""Core layer: version engines, configuration, errors and collaborators."""
