import time


def new_id(existing=()):
    """
    Time-based id (milliseconds since epoch) that is unique within `existing`.

    Two records created within the same millisecond get consecutive ids.
    """
    taken = {str(i) for i in existing}
    candidate = int(time.time() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)
