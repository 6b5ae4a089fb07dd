"""Fixed-window rate limiting: Firestore counters first, process memory as fallback."""

import hashlib
import re

from tutor_portal.repositories import rate_limit_repo

_KEY_PART_RE = re.compile(r'[^a-z0-9@._:-]+')

# Idle keys are swept once the map holds this many; no configured window exceeds the idle horizon.
MEMORY_SWEEP_THRESHOLD = 1024
MEMORY_IDLE_SECONDS = 86400


def normalize_key_part(value, fallback='anon', max_length=80):
    cleaned = _KEY_PART_RE.sub('-', str(value or '').strip().lower()).strip('-')
    return cleaned[:max_length] or fallback


def build_key(scope, *parts):
    return ':'.join([scope] + [normalize_key_part(part) for part in parts])


def window_bounds(now_ts, window_seconds):
    window_start = int(now_ts // window_seconds) * int(window_seconds)
    retry_after = max(1, int((window_start + window_seconds) - now_ts))
    return window_start, retry_after


def counter_id(key, window_seconds, window_start):
    raw = f"{key}|{window_seconds}|{int(window_start)}".encode('utf-8')
    return hashlib.sha256(raw).hexdigest()


def _check_firestore(key, limit, window_seconds, now_ts, *, db, firestore_module, counter_collection, logger):
    window_start, retry_after = window_bounds(now_ts, window_seconds)
    counter_ref = rate_limit_repo.counter_doc_ref(db, counter_collection, counter_id(key, window_seconds, window_start))

    def _txn(txn):
        snapshot = counter_ref.get(transaction=txn)
        count = 0
        if snapshot.exists:
            count = int((snapshot.to_dict() or {}).get('count', 0) or 0)
        if count >= limit:
            return False, retry_after
        txn.set(counter_ref, {
            'key': key,
            'count': count + 1,
            'windowStart': window_start,
            'windowSeconds': int(window_seconds),
            'expiresAt': window_start + (window_seconds * 3),
        }, merge=True)
        return True, 0

    try:
        return firestore_module.transactional(_txn)(db.transaction())
    except Exception as exc:
        if logger is not None:
            logger.warning(f"Rate limit counter unavailable, using in-memory window: {exc}")
        return None


def _sweep_idle_keys(events, now_ts):
    horizon = now_ts - MEMORY_IDLE_SECONDS
    for stale_key in [name for name, stamps in events.items() if not stamps or stamps[-1] < horizon]:
        del events[stale_key]


def _check_memory(key, limit, window_seconds, now_ts, *, events, lock):
    with lock:
        if len(events) >= MEMORY_SWEEP_THRESHOLD:
            _sweep_idle_keys(events, now_ts)
        cutoff = now_ts - window_seconds
        kept = [ts for ts in events.get(key, []) if ts >= cutoff]
        if len(kept) >= limit:
            events[key] = kept
            return False, max(1, int((kept[0] + window_seconds) - now_ts))
        kept.append(now_ts)
        events[key] = kept
    return True, 0


def check_rate_limit(
    key,
    limit,
    window_seconds,
    *,
    firestore_enabled,
    db,
    firestore_module,
    counter_collection,
    in_memory_events,
    in_memory_lock,
    time_module,
    logger=None,
):
    """Return ``(allowed, retry_after_seconds)``."""
    now_ts = time_module.time()
    if firestore_enabled and db is not None:
        result = _check_firestore(
            key,
            limit,
            window_seconds,
            now_ts,
            db=db,
            firestore_module=firestore_module,
            counter_collection=counter_collection,
            logger=logger,
        )
        if result is not None:
            return result
    return _check_memory(key, limit, window_seconds, now_ts, events=in_memory_events, lock=in_memory_lock)
