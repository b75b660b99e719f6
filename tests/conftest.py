"""Shared fixtures: in-memory Redis/S2 clients, storages and sample documents.

The fakes mirror the call signatures of ``redis.asyncio.Redis`` and the
``streamstore`` SDK; ``test_storage_sdk_compat.py`` checks them against the
real packages when those are installed.
"""

from __future__ import annotations

import os
import re
import types
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from tally.config import clear_config_cache
from tally.models.conversation import Conversation
from tally.storage.local import LocalStorage
from tally.storage.redis import RedisStorage
from tally.storage.s2 import S2Storage


# ---------------------------------------------------------------------------
# Fake redis.asyncio client
# ---------------------------------------------------------------------------


def redis_glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a Redis MATCH pattern, honouring backslash escapes."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char == "*":
            out.append(".*")
        elif char == "?":
            out.append(".")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("^"):
                    body = "^" + re.escape(body[1:])
                else:
                    body = re.escape(body)
                out.append(f"[{body}]")
                i = end
        else:
            out.append(re.escape(char))
        i += 1
    return re.compile("".join(out) + r"\Z", re.DOTALL)


class FakeRedis:
    """Just enough of redis.asyncio.Redis (decode_responses=True) for RedisStorage."""

    def __init__(self) -> None:
        self.streams: dict[str, list[tuple[str, dict[str, str]]]] = {}
        self.xadd_calls: list[dict[str, Any]] = []
        self.closed = False
        self._seq = 0

    async def scan_iter(self, match=None, count=None, _type=None):
        regex = redis_glob_to_regex(match) if match is not None else None
        for key in sorted(self.streams):
            if regex is None or regex.match(key):
                yield key

    async def exists(self, *names: str) -> int:
        return sum(1 for name in names if name in self.streams)

    async def xrange(self, name, min="-", max="+", count=None):
        return list(self.streams.get(name, []))

    async def xadd(self, name, fields, id="*", maxlen=None, approximate=True):
        self._seq += 1
        entry_id = f"{self._seq}-0"
        self.streams.setdefault(name, []).append((entry_id, dict(fields)))
        self.xadd_calls.append(
            {"key": name, "fields": dict(fields), "maxlen": maxlen, "approximate": approximate}
        )
        if maxlen is not None:
            self.streams[name] = self.streams[name][-maxlen:]
        return entry_id

    async def delete(self, *names: str) -> int:
        removed = 0
        for name in names:
            if self.streams.pop(name, None) is not None:
                removed += 1
        return removed

    async def aclose(self, close_connection_pool=None) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fake streamstore SDK
# ---------------------------------------------------------------------------


class FakeS2Error(Exception):
    pass


@dataclass
class FakeRecord:
    body: bytes
    headers: list[tuple[bytes, bytes]] = field(default_factory=list)
    timestamp: int | None = None


@dataclass
class FakeAppendInput:
    records: list[FakeRecord]
    match_seq_num: int | None = None
    fencing_token: str | None = None


@dataclass
class FakeSequencedRecord:
    seq_num: int
    body: bytes
    headers: list[tuple[bytes, bytes]]
    timestamp: int = 0


@dataclass
class FakeSeqNum:
    value: int


@dataclass
class FakeTail:
    next_seq_num: int
    last_timestamp: int


@dataclass
class FakeStreamInfo:
    name: str
    created_at: datetime
    deleted_at: datetime | None


@dataclass
class FakePage:
    items: list[FakeStreamInfo]
    has_more: bool


class FakeCommandRecord:
    FENCE = b"fence"
    TRIM = b"trim"

    @staticmethod
    def trim(desired_first_seq_num: int) -> FakeRecord:
        return FakeRecord(
            body=desired_first_seq_num.to_bytes(8, "big"),
            headers=[(b"", FakeCommandRecord.TRIM)],
        )


class FakeStream:
    # Small batches so readers must keep reading until the tail.
    read_batch_size = 2

    def __init__(self, basin: FakeBasin, name: str) -> None:
        self._basin = basin
        self.name = name

    def _records(self) -> list[FakeSequencedRecord]:
        if self.name not in self._basin.streams:
            raise FakeS2Error(f"stream {self.name} not found")
        return self._basin.streams[self.name]

    def _next_seq_num(self) -> int:
        return self._basin.next_seq_nums.get(self.name, 0)

    async def check_tail(self) -> FakeTail:
        self._records()
        return FakeTail(self._next_seq_num(), 0)

    async def append(self, input: FakeAppendInput) -> None:
        records = self._records()
        for record in input.records:
            seq_num = self._next_seq_num()
            records.append(
                FakeSequencedRecord(seq_num=seq_num, body=record.body, headers=record.headers)
            )
            self._basin.next_seq_nums[self.name] = seq_num + 1

    async def read(self, start, limit=None, until=None, ignore_command_records=False):
        records = [r for r in self._records() if r.seq_num >= start.value]
        if start.value >= self._next_seq_num():
            return FakeTail(self._next_seq_num(), 0)
        batch = records[: self.read_batch_size]
        if ignore_command_records:
            batch = [r for r in batch if not any(name == b"" for name, _ in r.headers)]
        return batch


class FakeBasin:
    """A basin whose deletes and trims stay pending until applied."""

    page_size = 2

    def __init__(self) -> None:
        self.streams: dict[str, list[FakeSequencedRecord]] = {}
        self.next_seq_nums: dict[str, int] = {}
        self.pending_deletion: set[str] = set()

    async def list_streams(self, prefix: str = "", start_after: str = "", limit: int = 1000):
        names = sorted(
            name
            for name in set(self.streams) | self.pending_deletion
            if name.startswith(prefix) and name > start_after
        )
        page = names[: min(limit, self.page_size)]
        created = datetime(2024, 5, 1, tzinfo=timezone.utc)
        return FakePage(
            items=[
                FakeStreamInfo(
                    name=name,
                    created_at=created,
                    deleted_at=created if name in self.pending_deletion else None,
                )
                for name in page
            ],
            has_more=len(names) > len(page),
        )

    async def create_stream(self, name: str, config=None) -> FakeStreamInfo:
        if name in self.streams or name in self.pending_deletion:
            raise FakeS2Error(f"stream {name} already exists")
        self.streams[name] = []
        self.next_seq_nums[name] = 0
        return FakeStreamInfo(name=name, created_at=datetime.now(timezone.utc), deleted_at=None)

    async def delete_stream(self, name: str) -> None:
        if name not in self.streams:
            raise FakeS2Error(f"stream {name} not found")
        del self.streams[name]
        del self.next_seq_nums[name]
        self.pending_deletion.add(name)

    def finish_deletions(self) -> None:
        self.pending_deletion.clear()

    def apply_trims(self) -> None:
        for name, records in self.streams.items():
            first = 0
            for record in records:
                if (b"", FakeCommandRecord.TRIM) in record.headers:
                    first = max(first, int.from_bytes(record.body, "big"))
            self.streams[name] = [r for r in records if r.seq_num >= first]

    def __getitem__(self, name: str) -> FakeStream:
        return FakeStream(self, name)


class FakeS2:
    def __init__(self, access_token: str) -> None:
        self.access_token = access_token
        self.basins: dict[str, FakeBasin] = {}
        self.closed = False

    def __getitem__(self, name: str) -> FakeBasin:
        return self.basins.setdefault(name, FakeBasin())

    async def close(self) -> None:
        self.closed = True


def make_fake_streamstore() -> types.SimpleNamespace:
    return types.SimpleNamespace(
        S2=FakeS2,
        S2Error=FakeS2Error,
        schemas=types.SimpleNamespace(
            AppendInput=FakeAppendInput,
            Record=FakeRecord,
            SeqNum=FakeSeqNum,
            Tail=FakeTail,
        ),
        utils=types.SimpleNamespace(CommandRecord=FakeCommandRecord),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch):
    """Keep TALLY_* variables and the config cache from leaking between tests."""
    for name in list(os.environ):
        if name.startswith("TALLY_"):
            monkeypatch.delenv(name)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_streamstore(monkeypatch: pytest.MonkeyPatch) -> types.SimpleNamespace:
    module = make_fake_streamstore()
    monkeypatch.setattr("tally.storage.s2._require_streamstore", lambda: module)
    return module


@pytest.fixture
def s2_client() -> FakeS2:
    return FakeS2(access_token="test-token")


@pytest.fixture
def redis_storage(fake_redis: FakeRedis) -> RedisStorage:
    return RedisStorage(client=fake_redis)


@pytest.fixture
def s2_storage(fake_streamstore, s2_client: FakeS2) -> S2Storage:
    return S2Storage(basin="test-basin", client=s2_client)


@pytest.fixture(params=["local", "redis", "s2"])
def storage_and_base(request: pytest.FixtureRequest, tmp_path: Path):
    """Each backend paired with a base path to write under."""
    if request.param == "local":
        return LocalStorage(), str(tmp_path)
    if request.param == "redis":
        return RedisStorage(client=FakeRedis()), "store"
    request.getfixturevalue("fake_streamstore")
    return S2Storage(basin="test-basin", client=FakeS2(access_token="test-token")), "store"


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------


@pytest.fixture
def conversation() -> Conversation:
    return Conversation.model_validate(
        {
            "id": "conv-weather",
            "metadata": {"agent": "weather"},
            "steps": [
                {
                    "stepIndex": 0,
                    "input": {"role": "user", "content": "Weather in Paris?"},
                    "output": [
                        {
                            "role": "assistant",
                            "content": [
                                {
                                    "type": "tool-call",
                                    "toolCallId": "call-1",
                                    "toolName": "getWeather",
                                    "input": {"city": "Paris"},
                                }
                            ],
                        },
                        {
                            "role": "tool",
                            "toolCallId": "call-1",
                            "toolName": "getWeather",
                            "content": "18C and sunny",
                        },
                        {"role": "assistant", "content": "It is 18C and sunny in Paris."},
                    ],
                    "timestamp": "2024-05-01T10:00:00Z",
                },
                {
                    "stepIndex": 1,
                    "input": {"role": "user", "content": "Thanks!"},
                    "output": [{"role": "assistant", "content": "You're welcome."}],
                },
            ],
        }
    )


@pytest.fixture
def artifact_dict() -> dict[str, Any]:
    """A realistic run artifact as it appears on disk (camelCase)."""
    threshold = {"kind": "number", "type": "threshold", "passAt": 0.7}
    return {
        "schemaVersion": 1,
        "runId": "run-1714557600000-abc123",
        "createdAt": "2024-05-01T10:00:00.000Z",
        "defs": {
            "metrics": {
                "relevance": {"name": "relevance", "scope": "single", "valueType": "number"},
                "goalReached": {"name": "goalReached", "scope": "multi", "valueType": "boolean"},
            },
            "evals": {
                "Relevance": {
                    "name": "Relevance",
                    "kind": "singleTurn",
                    "outputShape": "seriesByStepIndex",
                    "metric": "relevance",
                    "verdict": threshold,
                },
                "Goal": {
                    "name": "Goal",
                    "kind": "multiTurn",
                    "outputShape": "scalar",
                    "metric": "goalReached",
                    "verdict": {"kind": "boolean", "passWhen": True},
                },
                "Quality": {
                    "name": "Quality",
                    "kind": "scorer",
                    "outputShape": "seriesByStepIndex",
                    "metric": "quality",
                    "scorerRef": "quality",
                },
            },
            "scorers": {
                "quality": {
                    "name": "quality",
                    "inputs": [{"metricRef": "relevance", "weight": 1.0}],
                    "combine": {"kind": "weightedAverage"},
                }
            },
        },
        "result": {
            "stepCount": 2,
            "singleTurn": {
                "Relevance": {
                    "byStepIndex": [
                        {
                            "evalRef": "Relevance",
                            "measurement": {
                                "metricRef": "relevance",
                                "score": 0.9,
                                "rawValue": 0.9,
                            },
                            "outcome": {"verdict": "pass", "policy": threshold},
                        },
                        None,
                    ]
                }
            },
            "multiTurn": {
                "Goal": {
                    "evalRef": "Goal",
                    "measurement": {"metricRef": "goalReached", "score": 1.0, "rawValue": True},
                    "outcome": {
                        "verdict": "pass",
                        "policy": {"kind": "boolean", "passWhen": True},
                        "observed": {"rawValue": True, "score": 1.0},
                    },
                }
            },
            "scorers": {
                "Quality": {
                    "shape": "seriesByStepIndex",
                    "series": {
                        "byStepIndex": [
                            {
                                "evalRef": "Quality",
                                "measurement": {"metricRef": "quality", "score": 0.9},
                            },
                            {
                                "evalRef": "Quality",
                                "measurement": {
                                    "metricRef": "quality",
                                    "score": 0.5,
                                    "rawValue": None,
                                },
                            },
                        ]
                    },
                }
            },
            "summaries": {
                "byEval": {
                    "Relevance": {
                        "eval": "Relevance",
                        "kind": "singleTurn",
                        "count": 1,
                        "aggregations": {"score": {"mean": 0.9}},
                        "verdictSummary": {
                            "passRate": 1.0,
                            "failRate": 0.0,
                            "unknownRate": 0.0,
                            "passCount": 1,
                            "failCount": 0,
                            "unknownCount": 0,
                            "totalCount": 1,
                        },
                    }
                }
            },
        },
    }


@pytest.fixture
def trajectory_meta_dict() -> dict[str, Any]:
    return {
        "version": 1,
        "trajectoryId": "traj-1714557600000-x1y2z3",
        "createdAt": "2024-05-01T10:00:00Z",
        "goal": "Book a table for two",
        "persona": {"name": "Sam", "description": "A busy professional", "guardrails": ["polite"]},
        "maxTurns": 8,
        "loopDetection": {"maxConsecutiveSameStep": 3},
        "stepGraph": {
            "start": "greet",
            "terminals": ["confirm"],
            "steps": [{"id": "greet"}, {"id": "confirm"}],
        },
    }


@pytest.fixture
def step_traces_list() -> list[dict[str, Any]]:
    return [
        {
            "turnIndex": 0,
            "userMessage": {"role": "user", "content": "Hi, I need a table"},
            "agentMessages": [{"role": "assistant", "content": "For how many?"}],
            "timestamp": "2024-05-01T10:00:00Z",
            "stepId": "greet",
            "selection": {"method": "start"},
        },
        {
            "turnIndex": 1,
            "userMessage": {"role": "user", "content": "Two people"},
            "agentMessages": [{"role": "assistant", "content": "Booked."}],
            "timestamp": "2024-05-01T10:01:00Z",
            "stepId": None,
            "selection": {
                "method": "llm-ranked",
                "candidates": [{"stepId": "confirm", "score": 0.8, "reasons": ["asked"]}],
            },
            "end": {"isFinal": True, "reason": "goal-reached", "completed": True},
        },
    ]


@pytest.fixture
def trajectory_run_meta_dict() -> dict[str, Any]:
    return {
        "runId": "run-1714557600000-t0t0t0",
        "conversationId": "traj-1714557600000-x1y2z3",
        "timestamp": "2024-05-01T10:02:00Z",
        "goal": "Book a table for two",
        "persona": {"description": "A busy professional"},
        "completed": True,
        "reason": "goal-reached",
        "totalTurns": 2,
        "stepCount": 2,
        "stepsCompleted": 2,
    }
