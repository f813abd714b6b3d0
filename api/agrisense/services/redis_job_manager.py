from __future__ import annotations
import json
import time
from dataclasses import asdict
from typing import Dict, Any, Optional
import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError
from agrisense.obs.logging_setup import get_logger
from agrisense.obs.decorators import traced
from agrisense.config import REDIS_URL, JOB_TTL_SECONDS, CIRCUIT_FAILURE_THRESHOLD, CIRCUIT_RECOVERY_SECONDS
from agrisense.services.job_manager import Job, JobStatus, JobStore, JobStoreError, JobNotFoundError, TERMINAL_STATUSES
from agrisense.utils.circuit_breaker import CircuitBreaker, CircuitOpenError

logger = get_logger(__name__)

def _encode(job: Job) -> Dict[str, str]:
    data = asdict(job)
    data["status"] = job.status.value
    data["metadata"] = json.dumps(job.metadata, default=str)
    return {k: str(v) for k, v in data.items() if v is not None}

def _decode(data: Dict[str, str]) -> Job:
    return Job(
        job_id=data["job_id"],
        user_id=data.get("user_id"),
        text=data.get("text"),
        room_id=data.get("room_id"),
        language=data.get("language"),
        status=JobStatus(data["status"]),
        result=data.get("result"),
        metadata=json.loads(data["metadata"]) if data.get("metadata") else {},
        created_at=float(data["created_at"]),
        updated_at=float(data["updated_at"]),
    )

class RedisJobStore(JobStore):
    """Redis-backed job store for durability across restarts and workers.

    Each job is a hash at ``job:<id>``. The terminal write runs under
    WATCH/MULTI so concurrent completions cannot both succeed.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = JOB_TTL_SECONDS,
        client: Optional[redis.Redis] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.redis_url = redis_url or REDIS_URL
        self.ttl_seconds = ttl_seconds
        self._redis = client
        self.breaker = breaker or CircuitBreaker(
            "redis",
            failure_threshold=CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout=CIRCUIT_RECOVERY_SECONDS,
            expected_exception=RedisError,
        )

    def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                max_connections=20
            )
            logger.info("Redis client created", redis_url=self.redis_url)
        return self._redis

    def _job_key(self, job_id: str) -> str:
        return f"job:{job_id}"

    async def _guarded(self, operation: str, func, *args):
        try:
            return await self.breaker.call(func, *args)
        except (RedisError, CircuitOpenError) as e:
            logger.error("Redis job store operation failed", operation=operation, error=str(e))
            raise JobStoreError(f"{operation} failed: {e}") from e

    @traced("redis_insert_job")
    async def insert(self, job: Job) -> None:
        async def _insert():
            client = self._get_redis()
            pipe = client.pipeline()
            pipe.hset(self._job_key(job.job_id), mapping=_encode(job))
            pipe.expire(self._job_key(job.job_id), self.ttl_seconds)
            await pipe.execute()

        await self._guarded("insert", _insert)

    @traced("redis_load_job")
    async def load(self, job_id: str) -> Optional[Job]:
        async def _load():
            return await self._get_redis().hgetall(self._job_key(job_id))

        data = await self._guarded("load", _load)
        return _decode(data) if data else None

    @traced("redis_finalize_job")
    async def finalize(self, job_id: str, status: JobStatus, result: Optional[str], metadata: Dict[str, Any]) -> Optional[Job]:
        key = self._job_key(job_id)

        async def _finalize():
            client = self._get_redis()
            async with client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(key)
                        data = await pipe.hgetall(key)
                        if not data:
                            await pipe.unwatch()
                            raise JobNotFoundError(job_id)

                        job = _decode(data)
                        if job.status in TERMINAL_STATUSES:
                            await pipe.unwatch()
                            return None

                        job.status = status
                        job.result = result
                        job.metadata.update(metadata)
                        job.updated_at = time.time()

                        pipe.multi()
                        pipe.hset(key, mapping=_encode(job))
                        pipe.expire(key, self.ttl_seconds)
                        await pipe.execute()
                        return job
                    except WatchError:
                        logger.debug("Job changed during terminal write, retrying", job_id=job_id)
                        continue

        return await self._guarded("finalize", _finalize)

    async def health_check(self) -> Dict[str, Any]:
        """Redis health check."""
        try:
            client = self._get_redis()
            start_time = time.time()
            await client.ping()
            ping_time = (time.time() - start_time) * 1000
            return {
                "status": "healthy",
                "backend": "redis",
                "ping_ms": round(ping_time, 2),
                "circuit": self.breaker.state.value
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "backend": "redis",
                "error": str(e)
            }

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
