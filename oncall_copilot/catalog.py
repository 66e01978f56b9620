"""Demo alerts, runbooks and canned tool results."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from oncall_copilot.errors import UnknownAlertError
from oncall_copilot.models import Alert, AlertSeverity, Runbook, Telemetry, now_utc

MOCK_RUNBOOKS: list[Runbook] = [
    Runbook(
        id="RB-A",
        name="API 5xx Spikes",
        symptoms=("Elevated HTTP 500/502/503 rates", "Increased latency in edge nodes"),
        checks=(
            "Check upstream service health",
            "Verify recent deployment stability",
            "Inspect for timeout patterns in logs",
        ),
        likely_causes=("Downstream dependency failure", "Bad code deploy", "Resource exhaustion"),
        remediation=("Rollback last deploy", "Scale API instances", "Circuit break failing downstream"),
    ),
    Runbook(
        id="RB-B",
        name="DB Connection Pool Exhaustion",
        symptoms=("DB connection timeouts", "App service thread pool saturation", "High DB CPU"),
        checks=("Count active connections vs max", "Check slow query logs", "Identify connection leaks"),
        likely_causes=("Missing connection closing", "Burst in traffic", "Degraded DB performance"),
        remediation=("Kill long-running queries", "Increase pool size", "Scale DB read replicas"),
    ),
    Runbook(
        id="RB-C",
        name="Redis Latency / Cache Saturation",
        symptoms=("Increased Redis response time", "High cache miss rate", "Application latency spikes"),
        checks=("Check Redis CPU and Memory", "Verify network throughput", "Inspect keyspace eviction rate"),
        likely_causes=("Hot key access", "Memory fragmentation", "Network congestion"),
        remediation=("Flush non-critical keys", "Scale Redis cluster", "Implement client-side caching"),
    ),
]


def _minutes_ago(minutes: int):
    return now_utc() - timedelta(minutes=minutes)


MOCK_ALERTS: list[Alert] = [
    Alert(
        id="ALRT-001",
        title="API 5xx rate > 5% in us-east-1",
        service="API",
        severity=AlertSeverity.CRITICAL,
        region="us-east-1",
        timestamp=_minutes_ago(4),
        telemetry=Telemetry(
            cpu_usage=45,
            db_connections=42,
            redis_latency=12,
            thread_pool_usage=25,
            recent_deploy="API v2.4.1 (12 mins ago)",
            error_rate=6.2,
            memory_usage=58,
        ),
        logs=(
            "14:02:01 INFO [API] Request processed in 45ms",
            "14:02:05 ERROR [API] Upstream 'PaymentSvc' timed out after 2000ms",
            "14:02:05 WARN [API] Retrying PaymentSvc call (attempt 1/3)",
            "14:02:07 ERROR [API] 502 Bad Gateway: PaymentSvc unreachable",
            "14:02:08 ERROR [API] Stacktrace: java.net.ConnectException: Connection refused",
        ),
    ),
    Alert(
        id="ALRT-002",
        title="PaymentSvc latency > 2s",
        service="PaymentSvc",
        severity=AlertSeverity.CRITICAL,
        region="us-west-2",
        timestamp=_minutes_ago(2),
        telemetry=Telemetry(
            cpu_usage=32,
            db_connections=88,
            redis_latency=450,
            thread_pool_usage=92,
            recent_deploy="PaymentSvc v1.2.4 (15 mins ago)",
            error_rate=1.1,
            memory_usage=74,
        ),
        logs=(
            "13:58:10 INFO [PaymentSvc] Executing transaction TX-992",
            "13:58:12 WARN [PaymentSvc] Redis command GET 'session_992' took 420ms",
            "13:58:15 ERROR [PaymentSvc] Cache access degraded; falling back to DB",
            "13:58:20 INFO [PaymentSvc] Thread pool 'Worker-1' saturated; queue length > 1000",
            "13:58:22 WARN [PaymentSvc] High latency detected on Redis cluster node 04",
        ),
    ),
    Alert(
        id="ALRT-003",
        title="DB CPU > 85%",
        service="DB",
        severity=AlertSeverity.WARNING,
        region="us-east-1",
        timestamp=_minutes_ago(15),
        telemetry=Telemetry(
            cpu_usage=89,
            db_connections=120,
            redis_latency=8,
            thread_pool_usage=10,
            recent_deploy="N/A",
            error_rate=0.2,
            memory_usage=92,
        ),
        logs=(
            "13:45:00 INFO [DB] Vacuuming system catalogs",
            "13:46:12 WARN [DB] Slow query detected (12.4s): SELECT * FROM large_audit_trail...",
            "13:47:05 ERROR [DB] Out of memory condition imminent in shared_buffers",
            "13:48:00 INFO [DB] Checkpoint starting: forced by time",
        ),
    ),
    Alert(
        id="ALRT-004",
        title="Cache miss rate spiking",
        service="Cache",
        severity=AlertSeverity.WARNING,
        region="eu-central-1",
        timestamp=_minutes_ago(8),
        telemetry=Telemetry(
            cpu_usage=12,
            db_connections=5,
            redis_latency=22,
            thread_pool_usage=5,
            recent_deploy="N/A",
            error_rate=0.1,
            memory_usage=98,
        ),
        logs=(
            "13:52:00 INFO [Cache] Maxmemory limit hit (2GB)",
            "13:52:05 WARN [Cache] Evicting keys using allkeys-lru policy",
            "13:53:10 INFO [Cache] Miss rate increased to 42% (Normal: 4%)",
            "13:54:01 WARN [Cache] Hot key 'global_config_v2' detected",
        ),
    ),
    Alert(
        id="ALRT-005",
        title="Auth timeouts increasing",
        service="Auth",
        severity=AlertSeverity.CRITICAL,
        region="us-east-1",
        timestamp=_minutes_ago(3),
        telemetry=Telemetry(
            cpu_usage=18,
            db_connections=15,
            redis_latency=5,
            thread_pool_usage=85,
            recent_deploy="Auth v3.0.1 (2 days ago)",
            error_rate=3.4,
            memory_usage=42,
        ),
        logs=(
            "14:00:05 ERROR [Auth] LDAP sync failed: Connection timeout",
            "14:01:12 INFO [Auth] Authenticating user 'admin' via backup DB",
            "14:01:45 WARN [Auth] Internal session pool nearly full",
            "14:02:10 ERROR [Auth] JWT validation failure for kid 'rsa-1'",
        ),
    ),
]

MOCK_TOOL_RESULTS: dict[str, dict[str, dict[str, Any]]] = {
    "ALRT-001": {
        "get_dependency_health": {"PaymentSvc": "Degraded", "AuthSvc": "Healthy", "Redis": "Healthy"},
        "get_recent_deploys": {
            "deploys": [{"service": "API", "version": "v2.4.1", "minutes_ago": 12, "status": "completed"}]
        },
        "get_recent_logs": {
            "service": "PaymentSvc",
            "lines": [
                "14:01:58 ERROR [PaymentSvc] Listener on :8443 closed unexpectedly",
                "14:02:00 WARN [PaymentSvc] Health check failed (3/3)",
            ],
        },
        "get_metric_history": {"metric": "http_5xx_rate", "points": [0.4, 0.5, 2.8, 5.9, 6.2]},
    },
    "ALRT-002": {
        "get_dependency_health": {"Redis": "Degraded", "PostgreSQL": "Healthy"},
        "get_resource_saturation": {"redis_node_04_cpu": 97, "thread_pool_usage": 92},
        "get_metric_history": {"metric": "redis_p99_latency_ms", "points": [9, 11, 180, 420, 450]},
        "get_recent_deploys": {
            "deploys": [{"service": "PaymentSvc", "version": "v1.2.4", "minutes_ago": 15, "status": "completed"}]
        },
    },
    "ALRT-003": {
        "get_resource_saturation": {"cpu": 89, "shared_buffers_used_pct": 97, "active_connections": 120},
        "get_recent_logs": {
            "service": "DB",
            "lines": ["13:46:12 WARN [DB] Slow query (12.4s) from reporting-batch on large_audit_trail"],
        },
    },
    "ALRT-004": {
        "get_resource_saturation": {"memory_used_pct": 98, "evicted_keys_per_sec": 3400},
        "get_metric_history": {"metric": "cache_miss_rate_pct", "points": [4, 5, 18, 37, 42]},
    },
    "ALRT-005": {
        "get_dependency_health": {"LDAP": "Unreachable", "AuthDB": "Healthy"},
        "get_recent_logs": {
            "service": "Auth",
            "lines": ["14:00:01 WARN [Auth] JWKS refresh failed; serving cached keys (kid rsa-2)"],
        },
    },
}


def get_alert(alert_id: str) -> Alert:
    for alert in MOCK_ALERTS:
        if alert.id == alert_id:
            return alert
    raise UnknownAlertError(alert_id)
