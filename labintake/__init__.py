"""Lab intake backend: submission draft lifecycle service."""
