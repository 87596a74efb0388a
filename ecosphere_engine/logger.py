# logger.py

def format_stamp(generation=None):
    """Returns the timestamp prefix for a log line."""
    if generation is None or generation <= 0:
        return "[Setup]"
    return f"[Gen {generation:06d}]"

def log(message, generation=None):
    """Prints a message with a simulation timestamp if available."""
    print(f"{format_stamp(generation)} {message}")
