"""BDD step definitions for log collection features.

Steps are synchronous, so each scenario drives the store on its own
event loop, created with the scenario context and closed after it.
"""

import asyncio
from collections.abc import Coroutine, Generator
from dataclasses import dataclass, field
from typing import Any, TypeVar

import pytest
from pytest_bdd import given, parsers, then, when

from loginspector.config import StoreSettings, load_query_settings
from loginspector.core.models import LogRecord, NodeStat, Page, TimeRange
from loginspector.service import LogService

T = TypeVar("T")


@dataclass
class LogScenarioContext:
    """Shared state between steps in a log collection scenario."""

    store_settings: StoreSettings
    loop: asyncio.AbstractEventLoop = field(default_factory=asyncio.new_event_loop)
    service: LogService | None = None
    page: Page[LogRecord] | None = None
    nodes: Page[NodeStat] | None = None

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine on the scenario's event loop."""
        return self.loop.run_until_complete(coro)

    @property
    def log_service(self) -> LogService:
        assert self.service is not None, "no log store was started"
        return self.service

    def node_stat(self, node: str) -> NodeStat:
        assert self.nodes is not None, "the inspector was not queried"
        for stat in self.nodes.result_list:
            if stat.source_node == node:
                return stat
        raise AssertionError(f"node {node!r} is not listed")


def _times(raw: str) -> list[float]:
    return [float(part) for part in raw.split(",") if part.strip()]


@pytest.fixture
def ctx(store_settings: StoreSettings) -> Generator[LogScenarioContext]:
    """Fresh scenario context for each test."""
    context = LogScenarioContext(store_settings=store_settings)
    yield context
    if context.service is not None:
        context.run(context.service.close())
    context.loop.close()


# === Background Steps ===
@given(parsers.parse("a started log store with page size {size:d}"))
def step_started_store(ctx: LogScenarioContext, size: int) -> None:
    service = LogService(ctx.store_settings, load_query_settings(page_size=size))
    ctx.service = ctx.run(service.start())


# === Reporting Steps ===
@given(parsers.parse('node "{node}" reported "{level}" records at times {times}'))
def step_reported_times(
    ctx: LogScenarioContext, node: str, level: str, times: str
) -> None:
    for time in _times(times):
        ctx.run(ctx.log_service.report(level, "tick", time=time, source_node=node))


@given(
    parsers.parse(
        'node "{node}" reported "{level}" record "{message}" at time {time:d}'
    )
)
def step_reported_message(
    ctx: LogScenarioContext, node: str, level: str, message: str, time: int
) -> None:
    ctx.run(ctx.log_service.report(level, message, time=time, source_node=node))


@when(
    parsers.parse(
        'node "{node}" reports an "{level}" record "{message}" at time {time:d}'
    )
)
def step_report(
    ctx: LogScenarioContext, node: str, level: str, message: str, time: int
) -> None:
    ctx.run(ctx.log_service.report(level, message, time=time, source_node=node))


# === Query Steps ===
@when(parsers.parse('the "{level}" level is queried'))
def step_query(ctx: LogScenarioContext, level: str) -> None:
    ctx.page = ctx.run(ctx.log_service.query(level))


@when(parsers.parse('the "{level}" level is queried on page {page_num:d}'))
def step_query_page(ctx: LogScenarioContext, level: str, page_num: int) -> None:
    ctx.page = ctx.run(ctx.log_service.query(level, page_num=page_num))


@when(
    parsers.parse(
        'the "{level}" level is queried since {since:d} with keyword "{keyword}"'
    )
)
def step_query_filtered(
    ctx: LogScenarioContext, level: str, since: int, keyword: str
) -> None:
    time_filter = TimeRange(since=since)
    ctx.page = ctx.run(ctx.log_service.query(level, time_filter, keyword))


@then(parsers.re(r"the page holds (?P<count>\d+) records?"))
def step_page_count(ctx: LogScenarioContext, count: str) -> None:
    assert ctx.page is not None
    assert len(ctx.page.result_list) == int(count)


@then(parsers.parse('record {index:d} comes from node "{node}"'))
def step_record_node(ctx: LogScenarioContext, index: int, node: str) -> None:
    assert ctx.page is not None
    assert ctx.page.result_list[index].source_node == node


@then(parsers.parse("the record times are {times}"))
def step_record_times(ctx: LogScenarioContext, times: str) -> None:
    assert ctx.page is not None
    assert [record.time for record in ctx.page.result_list] == _times(times)


@then(parsers.parse('the record messages are "{messages}"'))
def step_record_messages(ctx: LogScenarioContext, messages: str) -> None:
    assert ctx.page is not None
    expected = [message.strip() for message in messages.split(",")]
    assert [record.message for record in ctx.page.result_list] == expected


@then(parsers.parse("the next page is {page_num:d}"))
def step_next_page(ctx: LogScenarioContext, page_num: int) -> None:
    assert ctx.page is not None
    assert ctx.page.next_page == page_num


@then("there is no next page")
def step_no_next_page(ctx: LogScenarioContext) -> None:
    assert ctx.page is not None
    assert not ctx.page.has_next


# === Inspector Steps ===
@when(parsers.parse('the inspector is sorted by "{sorted_field}"'))
def step_inspector(ctx: LogScenarioContext, sorted_field: str) -> None:
    ctx.nodes = ctx.run(ctx.log_service.inspector(sorted_field))


@then(parsers.parse('the inspector lists nodes "{nodes}"'))
def step_inspector_nodes(ctx: LogScenarioContext, nodes: str) -> None:
    assert ctx.nodes is not None
    expected = [node.strip() for node in nodes.split(",")]
    assert [stat.source_node for stat in ctx.nodes.result_list] == expected


@then(parsers.parse('node "{node}" has an average period of {period:g}'))
def step_average_period(ctx: LogScenarioContext, node: str, period: float) -> None:
    assert ctx.node_stat(node).average_period == pytest.approx(period)


@then(parsers.parse('node "{node}" has a report count of {count:d}'))
def step_report_count(ctx: LogScenarioContext, node: str, count: int) -> None:
    assert ctx.node_stat(node).report_count == count


@then(parsers.parse('node "{node}" has no average period'))
def step_no_average_period(ctx: LogScenarioContext, node: str) -> None:
    assert ctx.node_stat(node).average_period is None
