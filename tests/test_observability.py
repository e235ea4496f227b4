"""Tests for the observability module."""

import pytest
import structlog
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from localauth.infrastructure.database import Database
from localauth.infrastructure.observability import (
    add_span_attributes,
    add_trace_context,
    configure_logging,
    get_current_trace_id,
    get_tracer,
    traced,
)
from localauth.modules.auth import AuthService, IncorrectCredentialsError, UserRepository
from localauth.modules.nonce import InMemoryTokenStore, TokenService

# Module-level setup: configure TracerProvider once before any tests run
_exporter = InMemorySpanExporter()
_provider = TracerProvider()
_provider.add_span_processor(SimpleSpanProcessor(_exporter))
trace.set_tracer_provider(_provider)


@pytest.fixture(autouse=True)
def clear_spans():
    """Clear spans before each test."""
    _exporter.clear()
    yield
    _exporter.clear()


def get_finished_spans():
    """Get finished spans from the module-level exporter."""
    return _exporter.get_finished_spans()


class TestTracedDecorator:
    """Tests for @traced decorator."""

    @pytest.mark.asyncio
    async def test_bare_decorator_uses_qualname(self):
        """Should name the span after the function."""

        @traced
        async def lookup():
            return "result"

        assert await lookup() == "result"
        spans = get_finished_spans()
        assert len(spans) == 1
        assert spans[0].name.endswith("lookup")
        assert spans[0].status.status_code == trace.StatusCode.OK

    @pytest.mark.asyncio
    async def test_custom_span_name(self):
        """Should use the given span name."""

        @traced(span_name="custom.span.name")
        async def lookup():
            return 1

        await lookup()
        assert get_finished_spans()[0].name == "custom.span.name"

    @pytest.mark.asyncio
    async def test_records_exception_and_reraises(self):
        """Should mark the span as errored and re-raise unchanged."""

        @traced(span_name="failing")
        async def fail():
            raise ValueError("test error")

        with pytest.raises(ValueError, match="test error"):
            await fail()

        span = get_finished_spans()[0]
        assert span.status.status_code == trace.StatusCode.ERROR
        assert [e.name for e in span.events] == ["exception"]

    @pytest.mark.asyncio
    async def test_record_exception_disabled(self):
        """Should skip the exception event when asked to."""

        @traced(span_name="quiet", record_exception=False)
        async def fail():
            raise KeyError("x")

        with pytest.raises(KeyError):
            await fail()

        span = get_finished_spans()[0]
        assert span.status.status_code == trace.StatusCode.ERROR
        assert span.events == ()

    def test_rejects_sync_functions(self):
        """Should only wrap coroutine functions."""
        with pytest.raises(TypeError):

            @traced
            def sync():
                return None

    @pytest.mark.asyncio
    async def test_auth_service_operations_are_traced(self, database: Database):
        """Should emit a span per service call, errored on failure."""
        service = AuthService(
            UserRepository(database), TokenService(InMemoryTokenStore())
        )

        with pytest.raises(IncorrectCredentialsError):
            await service.authenticate("nobody@example.com", "pw")

        spans = [s for s in get_finished_spans() if s.name == "auth.authenticate"]
        assert len(spans) == 1
        assert spans[0].status.status_code == trace.StatusCode.ERROR


class TestAddSpanAttributes:
    """Tests for add_span_attributes function."""

    def test_adds_attributes_to_current_span(self):
        """add_span_attributes should add attributes to current span."""
        tracer = get_tracer("test")

        with tracer.start_as_current_span("test_span"):
            add_span_attributes({"custom_key": "custom_value", "number": 100})

        attrs = dict(get_finished_spans()[0].attributes or {})
        assert attrs.get("custom_key") == "custom_value"
        assert attrs.get("number") == 100

    def test_does_nothing_without_active_span(self):
        """add_span_attributes should not fail without active span."""
        add_span_attributes({"key": "value"})


class TestGetCurrentTraceId:
    """Tests for get_current_trace_id function."""

    def test_returns_trace_id_when_in_span(self):
        """get_current_trace_id should return trace ID in active span."""
        with get_tracer("test").start_as_current_span("test_span"):
            trace_id = get_current_trace_id()
            assert trace_id is not None
            assert len(trace_id) == 32

    def test_returns_none_without_span(self):
        """get_current_trace_id should return None outside a span."""
        assert get_current_trace_id() is None


class TestStructlogProcessor:
    """Tests for structlog trace context processor."""

    def test_adds_trace_context_when_in_span(self):
        """Processor should add trace_id and span_id to event dict."""
        with get_tracer("test").start_as_current_span("test_span"):
            result = add_trace_context(None, "info", {"event": "test_event"})

        assert len(result["trace_id"]) == 32
        assert len(result["span_id"]) == 16

    def test_does_not_add_context_without_span(self):
        """Processor should leave events alone outside a span."""
        result = add_trace_context(None, "info", {"event": "test_event"})
        assert result == {"event": "test_event"}

    def test_configure_logging_includes_processor(self):
        """configure_logging should install the trace context processor."""
        configure_logging(json_logs=True)

        processors = structlog.get_config()["processors"]
        assert add_trace_context in processors
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        configure_logging()
