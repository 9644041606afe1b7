"""
Shared pytest fixtures for discovery, sorting and enrichment tests.

All tests are behavioral - they verify what the code should do, not how it does it.
"""

import pytest

from tests.helpers import FakeItemStore, make_analysis, make_item, make_node, make_story


@pytest.fixture
def item_store():
    """Story 1000 with kids [5, 3, 9]; item 5 lists 3 as its only child."""
    return FakeItemStore([
        make_story([5, 3, 9]),
        make_item(5, kids=[3], time=50),
        make_item(3, parent=5, time=30),
        make_item(9, time=90),
    ])


@pytest.fixture
def sample_tree():
    """Three root threads with nested replies and mixed annotations.

    1 (neutral, no score)
      11 (promoter 10)
        111 (no analysis)
      12 (detractor 2)
    2 (promoter, no score)
    3 (detractor 4)
      31 (neutral 8)
    """
    return [
        make_node(1, time=300, analysis=make_analysis("neutral"), children=[
            make_node(11, parent_id=1, time=320, analysis=make_analysis("promoter", 10), children=[
                make_node(111, parent_id=11, time=330),
            ]),
            make_node(12, parent_id=1, time=310, analysis=make_analysis("detractor", 2)),
        ]),
        make_node(2, time=100, analysis=make_analysis("promoter")),
        make_node(3, time=200, analysis=make_analysis("detractor", 4), children=[
            make_node(31, parent_id=3, time=210, analysis=make_analysis("neutral", 8)),
        ]),
    ]
