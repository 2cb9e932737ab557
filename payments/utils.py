import secrets
import string
import time

BASE36 = string.ascii_lowercase + string.digits


def generate_order_id(prefix="order"):
    # e.g. order_1718000000000_k3j9xq
    ms = int(time.time() * 1000)
    rand = "".join(secrets.choice(BASE36) for _ in range(6))
    return f"{prefix}_{ms}_{rand}"


def site_base_url(request, configured=""):
    """Origin used for processor return URLs: configured value, else the request's own."""
    if configured:
        return configured.rstrip("/")
    origin = request.headers.get("Origin") if request is not None else None
    if origin:
        return origin.rstrip("/")
    return request.build_absolute_uri("/").rstrip("/")
