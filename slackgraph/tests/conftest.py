import pytest

from helpers import TOKEN, FakeSlack
from slackgraph.driver.config import SlackConfig
from slackgraph.driver.emitter import EventBus
from slackgraph.driver.ids import SequentialIds
from slackgraph.driver.root import SlackDriver


@pytest.fixture
def slack() -> FakeSlack:
    return FakeSlack()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def driver(slack: FakeSlack, bus: EventBus) -> SlackDriver:
    return SlackDriver(
        config=SlackConfig(api_token=TOKEN),
        emitter=bus,
        view_ids=SequentialIds(),
        transport=slack.transport,
    )
