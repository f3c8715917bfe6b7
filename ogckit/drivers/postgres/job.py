"""Process job bookkeeping in PostgreSQL."""

from __future__ import annotations

import json
from typing import Any

from ogckit.drivers.base import JobHandler, Json, _decode_json

_COLUMN_KEYS = {"job_id": "jobID", "process_id": "processID"}


def _status_info(value: Any) -> Json | None:
    row = _decode_json(value)
    if row is None:
        return None
    return {_COLUMN_KEYS.get(key, key): item for key, item in row.items()}


class PgJobs(JobHandler):
    """Jobs stored in ``meta.jobs``.

    Mixed into a driver that holds an asyncpg-style connection pool as ``pool``.
    """

    pool: Any

    async def register(self, job: Json) -> str:
        return await self.pool.fetchval(
            """
            INSERT INTO meta.jobs(
                job_id, process_id, status, created, updated, links
            )
            VALUES (
                $1::jsonb ->> 'jobID', $1::jsonb ->> 'processID', $1::jsonb -> 'status',
                NOW(), NOW(), $1::jsonb -> 'links'
            )
            RETURNING job_id
            """,
            json.dumps(job),
        )

    async def status(self, id: str) -> Json | None:
        value = await self.pool.fetchval(
            "SELECT row_to_json(jobs) FROM meta.jobs WHERE job_id = $1", id
        )
        return _status_info(value)

    async def dismiss(self, id: str) -> Json | None:
        value = await self.pool.fetchval(
            """
            UPDATE meta.jobs
            SET status = $2::jsonb,
                message = 'Job dismissed'
            WHERE job_id = $1 AND status <@ '["accepted", "running"]'::jsonb
            RETURNING row_to_json(jobs)
            """,
            id,
            json.dumps("dismissed"),
        )
        return _status_info(value)

    async def results(self, id: str) -> Any | None:
        value = await self.pool.fetchval(
            "SELECT results FROM meta.jobs WHERE job_id = $1", id
        )
        return _decode_json(value)