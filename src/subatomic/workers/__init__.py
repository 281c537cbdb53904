from subatomic.workers.handler import handle_event, main, process_event

__all__ = ["handle_event", "main", "process_event"]
