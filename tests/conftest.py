"""Pytest configuration and shared fixtures for pages-insight tests."""

from typing import Any, Dict, List
from unittest.mock import patch

import pytest

from pages_insight.core.types import ColumnDescriptor, ColumnType


class MockSessionState(dict):
    """Mock Streamlit session_state that behaves like a dict."""
    pass


@pytest.fixture
def mock_streamlit():
    """
    Mock Streamlit's session_state for testing the browser.

    This fixture patches st.session_state to allow testing state storage
    without running a full Streamlit server.
    """
    mock_session_state = MockSessionState()

    with patch('streamlit.session_state', mock_session_state):
        yield mock_session_state


def make_record(
    item_id: int,
    title: str,
    created: str = "2024-03-05T09:30:00Z",
    topics: Any = None,
    author: Any = None,
    folder: str = "/sites/kb/SitePages/HR",
) -> Dict[str, Any]:
    """Build a list item shaped like the REST items payload."""
    return {
        "Id": item_id,
        "Title": title,
        "FileRef": f"{folder}/{title}.aspx",
        "FileDirRef": folder,
        "FSObjType": 0,
        "FileLeafRef": f"{title}.aspx",
        "Created": created,
        "Topics": topics,
        "Author": author,
    }


def terms(*labels: str) -> List[Dict[str, str]]:
    """Taxonomy field value with one term per label."""
    return [{"Label": label, "TermGuid": f"guid-{label}"} for label in labels]


@pytest.fixture
def sample_columns() -> List[ColumnDescriptor]:
    """Columns of a typical Site Pages view."""
    return [
        ColumnDescriptor("FileLeafRef", "Name", ColumnType.COMPUTED, type_name="Computed"),
        ColumnDescriptor("Title", "Title", ColumnType.TEXT, type_name="Text"),
        ColumnDescriptor("Created", "Created", ColumnType.DATETIME, type_name="DateTime"),
        ColumnDescriptor("Author", "Created By", ColumnType.USER, type_name="User"),
        ColumnDescriptor(
            "Topics", "Topics", ColumnType.TAXONOMY_MULTI, type_name="TaxonomyFieldTypeMulti"
        ),
        ColumnDescriptor("Status", "Status", ColumnType.CHOICE, type_name="Choice"),
    ]


@pytest.fixture
def sample_records() -> List[Dict[str, Any]]:
    """Five records with mixed taxonomy, user and date values."""
    alice = {"Id": 7, "Title": "Alice"}
    bob = {"Id": 9, "Title": "Bob"}
    return [
        make_record(1, "Onboarding", "2024-03-05T09:30:00Z", terms("HR", "Policy"), alice),
        make_record(2, "Payroll", "2024-03-05T17:45:00Z", terms("HR"), bob),
        make_record(3, "Security", "2024-03-06T08:00:00Z", terms("IT"), alice),
        make_record(4, "Travel", "2024-03-07T12:00:00Z", None, bob),
        make_record(5, "Laptops", "2024-03-07T13:00:00Z", terms("IT", "Policy"), alice),
    ]


@pytest.fixture
def numbered_records() -> List[Dict[str, Any]]:
    """25 records for pagination tests."""
    return [make_record(i, f"page_{i:02d}") for i in range(25)]


@pytest.fixture
def record_factory():
    """The make_record helper, for tests that build their own batches."""
    return make_record


@pytest.fixture
def terms_factory():
    """The terms helper, for building taxonomy field values."""
    return terms
