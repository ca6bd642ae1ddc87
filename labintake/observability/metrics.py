"""Prometheus metrics for the intake backend.

Defines and exposes operational metrics for the draft lifecycle.
"""

from prometheus_client import Counter, Histogram

drafts_created_total = Counter(
    "labintake_drafts_created_total",
    "Total number of submission drafts created",
    ["path"]  # path: fresh|draft_key|reused
)

draft_patches_total = Counter(
    "labintake_draft_patches_total",
    "Total autosave patches applied",
    ["status"]  # status: success|error|rejected
)

attachment_uploads_total = Counter(
    "labintake_attachment_uploads_total",
    "Total attachment files processed",
    ["group", "status"]  # status: success|error
)

upload_batch_duration_seconds = Histogram(
    "labintake_upload_batch_duration_seconds",
    "Time spent uploading and merging one batch of attachments",
    ["group"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

finalizations_total = Counter(
    "labintake_finalizations_total",
    "Total finalize attempts",
    ["outcome"]  # outcome: submitted|already_finalized|error
)

code_collisions_total = Counter(
    "labintake_code_collisions_total",
    "Submission code collisions that forced regeneration"
)

label_requests_total = Counter(
    "labintake_label_requests_total",
    "Shipping label requests issued",
    ["status"]  # status: created|reused|error
)
