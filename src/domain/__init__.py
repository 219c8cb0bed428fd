"""Domain layer (pure logic).

- Keep the stats document shape and the merge rules here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI.
- Functions never mutate their arguments; callers rely on the loaded
  document staying valid while a conflicting store is retried.
"""
