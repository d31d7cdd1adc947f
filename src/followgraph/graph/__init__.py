from followgraph.graph.errors import (
    AlreadyFollowing,
    AlreadyRegistered,
    GraphError,
    InvariantViolation,
    MissingCount,
    MissingFollowerList,
    NotFollowing,
    NotRegistered,
    SelfFollow,
    StaleNonce,
    Underflow,
)
from followgraph.graph.events import EventLog, FanoutSink, LoggingEventSink
from followgraph.graph.store import GraphStore, MemoryStateBackend, SqliteStateBackend
from followgraph.graph.types import CreateUser, FollowUser, Registration, UnFollowUser

__all__ = [
    "AlreadyFollowing",
    "AlreadyRegistered",
    "CreateUser",
    "EventLog",
    "FanoutSink",
    "FollowUser",
    "GraphError",
    "GraphStore",
    "InvariantViolation",
    "LoggingEventSink",
    "MemoryStateBackend",
    "MissingCount",
    "MissingFollowerList",
    "NotFollowing",
    "NotRegistered",
    "Registration",
    "SelfFollow",
    "SqliteStateBackend",
    "StaleNonce",
    "UnFollowUser",
    "Underflow",
]
