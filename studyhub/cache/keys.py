class RedisKeys:
    """Redis key and channel patterns for the study group service."""
    
    # Channel prefixes
    INSERTS_PREFIX = "inserts:"
    
    @staticmethod
    def inserts(table: str) -> str:
        """Pub/sub channel carrying rows freshly inserted into a table."""
        return f"{RedisKeys.INSERTS_PREFIX}{table}"
