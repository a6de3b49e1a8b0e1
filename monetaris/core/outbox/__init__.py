from monetaris.core.outbox.publisher import enqueue_event, fetch_pending, mark_published

__all__ = ["enqueue_event", "fetch_pending", "mark_published"]
