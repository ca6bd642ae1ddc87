"""Submission draft lifecycle: controller, uploads, finalize workflow, API."""
