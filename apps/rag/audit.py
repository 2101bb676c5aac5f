"""
Audit logging for answered queries and startup.

Emits one JSON line per event on the dedicated 'audit' logger. Query text
and answer content are never logged, only lengths and counts.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

audit_logger = logging.getLogger('audit')


class AuditEvent:
    """Standard audit event types."""
    FACTS_LOADED = 'facts.loaded'
    RAG_QUERY = 'rag.query'


def get_client_ip(request) -> str:
    """Extract client IP from request, handling proxies."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')


def get_request_id(request) -> str:
    """Get or generate a request ID for correlation."""
    request_id = request.META.get('HTTP_X_REQUEST_ID')
    if not request_id:
        request_id = str(uuid.uuid4())[:8]
    return request_id


def log_audit(
    event_type: str,
    request_id: Optional[str] = None,
    client_ip: Optional[str] = None,
    outcome: str = 'success',
    metadata: Optional[Dict[str, Any]] = None
):
    event = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'event_type': event_type,
        'request_id': request_id,
        'client_ip': client_ip,
        'outcome': outcome,
        'metadata': metadata or {}
    }
    audit_logger.info(json.dumps(event))


def audit_facts_loaded(fact_count: int, dimension: Optional[int]):
    log_audit(
        AuditEvent.FACTS_LOADED,
        metadata={
            'fact_count': fact_count,
            'dimension': dimension,
        }
    )


def audit_rag_query(
    request,
    question_length: int,
    expanded_count: int = 0,
    candidate_count: int = 0,
    citation_count: int = 0,
    unverified_count: int = 0,
    error: Optional[str] = None,
):
    """Log a RAG query (without the actual question text)."""
    log_audit(
        AuditEvent.RAG_QUERY,
        request_id=get_request_id(request),
        client_ip=get_client_ip(request),
        outcome='failure' if error else 'success',
        metadata={
            'question_length': question_length,
            'expanded_count': expanded_count,
            'candidate_count': candidate_count,
            'citation_count': citation_count,
            'unverified_count': unverified_count,
            'error': error,
        }
    )
