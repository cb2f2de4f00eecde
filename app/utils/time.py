from datetime import datetime, timezone


def get_time_stamp():
    return datetime.now(timezone.utc)
