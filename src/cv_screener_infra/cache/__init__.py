"""Cache backends implementing CacheClient."""
