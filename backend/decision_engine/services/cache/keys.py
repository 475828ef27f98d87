"""Cache key builders. One place for every key namespace."""


class CacheKeys:

    @staticmethod
    def idempotency_record(key: str) -> str:
        return f"idempotency:{key}"

    @staticmethod
    def idempotency_lock(key: str) -> str:
        return f"idempotency:lock:{key}"

    @staticmethod
    def resource_lock(resource: str) -> str:
        return f"idempotency:resource:{resource}"

    @staticmethod
    def generation_memo(key: str) -> str:
        return f"llm:memo:{key}"

    @staticmethod
    def decision_resource(job_id: str, candidate_id: str) -> str:
        return f"decision:{job_id}:{candidate_id}"
