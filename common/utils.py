import hmac, hashlib, json, time
from flask import request

def tokens_equal(expected: str, given: str) -> bool:
    return hmac.compare_digest(expected.encode(), (given or "").encode("utf-8", "replace"))

def chain_hash(prev_hash: str, event: dict) -> str:
    m = hashlib.sha256()
    m.update((prev_hash or "").encode())
    m.update(json.dumps(event, sort_keys=True).encode())
    return m.hexdigest()

def now_ms() -> int:
    return int(time.time() * 1000)

def client_ip() -> str:
    fwd = request.headers.get("X-Forwarded-For", "")
    if fwd:
        return fwd.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or "anonymous"
