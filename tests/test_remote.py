"""Tests for the REST client, column resolution and the pages service."""

from unittest.mock import MagicMock

import pytest
import requests

from pages_insight.core.config import BrowserConfig
from pages_insight.core.errors import FetchError, MetadataResolutionError, RemoteServiceError
from pages_insight.core.state import FetchRequest
from pages_insight.core.types import ActiveFilters, ColumnType, FilterClause
from pages_insight.remote.client import SharePointClient
from pages_insight.remote.columns import resolve_columns, to_column_descriptor
from pages_insight.remote.pages import (
    PagesService,
    file_name,
    subscribed_names,
    tag_subscriptions,
)

SITE = "https://contoso.sharepoint.com/sites/kb"


def json_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class FakeClient:
    """Serves canned JSON by path and records every call."""

    site_url = SITE

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get_json(self, path, params=None):
        self.calls.append((path, params))
        result = self.routes[path]
        if isinstance(result, Exception):
            raise result
        return result


def make_request(**changes):
    values = dict(
        generation=1,
        page=1,
        page_size=10,
        sort_column="Created",
        descending=True,
        scope="/sites/kb/SitePages",
        search_text="",
        filters=ActiveFilters(),
        columns=(),
    )
    values.update(changes)
    return FetchRequest(**values)


ITEMS_PATH = "_api/web/lists/getbytitle('Site Pages')/items"


class TestSharePointClient:
    """Tests for SharePointClient.get_json()."""

    def test_returns_decoded_json(self):
        session = MagicMock()
        session.get.return_value = json_response({"value": []})
        client = SharePointClient(SITE + "/", session=session, timeout=5)

        assert client.get_json("/_api/web", {"$top": 1}) == {"value": []}

        args, kwargs = session.get.call_args
        assert args[0] == f"{SITE}/_api/web"
        assert kwargs["params"] == {"$top": 1}
        assert kwargs["timeout"] == 5
        assert kwargs["headers"]["Accept"] == "application/json;odata=nometadata"

    def test_http_error_wrapped_with_status(self):
        failed = MagicMock()
        failed.status_code = 404
        response = json_response(None, 404)
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=failed)
        session = MagicMock()
        session.get.return_value = response

        with pytest.raises(RemoteServiceError, match="HTTP 404") as exc_info:
            SharePointClient(SITE, session=session).get_json("_api/web")

        assert exc_info.value.status_code == 404

    def test_connection_error_wrapped(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(RemoteServiceError, match="refused"):
            SharePointClient(SITE, session=session).get_json("_api/web")

    def test_invalid_json_wrapped(self):
        response = json_response(None)
        response.json.side_effect = ValueError("not json")
        session = MagicMock()
        session.get.return_value = response

        with pytest.raises(RemoteServiceError, match="invalid JSON"):
            SharePointClient(SITE, session=session).get_json("_api/web")

    def test_site_url_required(self):
        with pytest.raises(ValueError):
            SharePointClient("")


class TestResolveColumns:
    """Tests for resolve_columns()."""

    BASE = "_api/web/lists/getbytitle('Site Pages')"

    def field_routes(self):
        return {
            f"{self.BASE}/fields/getbyinternalnameortitle('Title')": {
                "InternalName": "Title",
                "Title": "Title",
                "TypeAsString": "Text",
            },
            f"{self.BASE}/fields/getbyinternalnameortitle('Topics')": {
                "InternalName": "Topics",
                "Title": "Topics",
                "TypeAsString": "TaxonomyFieldTypeMulti",
            },
        }

    def test_nometadata_payload(self):
        routes = self.field_routes()
        routes[f"{self.BASE}/views('v1')/viewfields"] = {"Items": ["Title", "Topics"]}

        columns = resolve_columns(FakeClient(routes), "v1")

        assert [c.internal_name for c in columns] == ["Title", "Topics"]
        assert columns[1].column_type is ColumnType.TAXONOMY_MULTI
        assert columns[0].min_width == 200

    def test_verbose_payload(self):
        routes = {
            key: {"d": value} for key, value in self.field_routes().items()
        }
        routes[f"{self.BASE}/views('v1')/viewfields"] = {
            "d": {"Items": {"results": ["Topics"]}}
        }

        columns = resolve_columns(FakeClient(routes), "v1")

        assert [c.display_name for c in columns] == ["Topics"]

    def test_remote_failure_raises_metadata_error(self):
        routes = {f"{self.BASE}/views('v1')/viewfields": RemoteServiceError("down", 503)}

        with pytest.raises(MetadataResolutionError, match="v1"):
            resolve_columns(FakeClient(routes), "v1")

    def test_field_failure_raises_metadata_error(self):
        routes = {
            f"{self.BASE}/views('v1')/viewfields": {"Items": ["Title"]},
            f"{self.BASE}/fields/getbyinternalnameortitle('Title')": RemoteServiceError("gone", 404),
        }

        with pytest.raises(MetadataResolutionError):
            resolve_columns(FakeClient(routes), "v1")

    def test_malformed_payload_raises_metadata_error(self):
        routes = {f"{self.BASE}/views('v1')/viewfields": {"Fields": []}}

        with pytest.raises(MetadataResolutionError):
            resolve_columns(FakeClient(routes), "v1")

    def test_unknown_type_becomes_text(self):
        column = to_column_descriptor(
            {"InternalName": "Body", "Title": "Body", "TypeAsString": "Note"}
        )

        assert column.column_type is ColumnType.TEXT
        assert column.type_name == "Note"
        assert (column.min_width, column.max_width) == (100, 200)


class TestSubscriptionHelpers:
    """Tests for alert title parsing and record tagging."""

    def test_file_name(self):
        assert file_name("/sites/kb/SitePages/HR/a.aspx") == "a.aspx"
        assert file_name(None) is None

    def test_subscribed_names_requires_list_prefix(self):
        alerts = [
            {"Title": "Site Pages: a.aspx"},
            {"Title": "Documents: b.docx"},
            {"Title": None},
        ]

        assert subscribed_names(alerts, "Site Pages") == {"a.aspx"}

    def test_tag_subscriptions(self, record_factory):
        records = [record_factory(1, "a"), record_factory(2, "b")]

        tagged = tag_subscriptions(records, {"a.aspx"})

        assert [r["Subscribed"] for r in tagged] == [True, False]


class TestPagesService:
    """Tests for PagesService."""

    def service(self, routes):
        client = FakeClient(routes)
        return client, PagesService(client, BrowserConfig(site_url=SITE))

    def test_items_query_parameters(self, sample_columns):
        client, service = self.service({ITEMS_PATH: {"value": []}})
        request = make_request(
            page=1,
            columns=tuple(sample_columns),
            filters=ActiveFilters().apply(FilterClause("Status", ColumnType.CHOICE, ("Draft",))),
        )

        service.fetch_items(request)

        path, params = client.calls[0]
        assert path == ITEMS_PATH
        assert params["$top"] == 5000
        assert params["$skip"] == 0
        assert params["$orderby"] == "Created desc"
        assert params["$expand"] == "Author"
        assert params["$filter"].endswith(" and (Status eq 'Draft')")
        assert params["$select"].startswith("FileRef,FileDirRef,FSObjType,Title,Id")

    def test_ascending_sort(self):
        client, service = self.service({ITEMS_PATH: {"value": []}})

        service.fetch_items(make_request(descending=False))

        assert client.calls[0][1]["$orderby"] == "Created asc"

    def test_expand_omitted_without_user_columns(self):
        client, service = self.service({ITEMS_PATH: {"value": []}})

        service.fetch_items(make_request())

        assert "$expand" not in client.calls[0][1]

    def test_taxonomy_clause_not_sent(self):
        client, service = self.service({ITEMS_PATH: {"value": []}})
        filters = ActiveFilters().apply(FilterClause("Topics", ColumnType.TAXONOMY_MULTI, ("HR",)))

        service.fetch_items(make_request(filters=filters))

        assert "Topics" not in client.calls[0][1]["$filter"]

    def test_enriched_page_tags_subscriptions(self, record_factory):
        records = [record_factory(1, "a"), record_factory(2, "b")]
        client, service = self.service(
            {
                ITEMS_PATH: {"value": records},
                "_api/web/currentuser": {"Id": 12},
                "_api/web/alerts": {"value": [{"Title": "Site Pages: b.aspx"}]},
            }
        )

        result = service.fetch_enriched_page(make_request())

        assert [r["Subscribed"] for r in result] == [False, True]
        alerts_params = client.calls[-1][1]
        assert alerts_params["$filter"] == "UserId eq 12 and substringof('Site Pages', Title)"

    def test_subscription_lookup_runs_after_items(self):
        client, service = self.service(
            {
                ITEMS_PATH: {"value": []},
                "_api/web/currentuser": {"Id": 12},
                "_api/web/alerts": {"value": []},
            }
        )

        service.fetch_enriched_page(make_request())

        assert [path for path, _ in client.calls] == [
            ITEMS_PATH,
            "_api/web/currentuser",
            "_api/web/alerts",
        ]

    def test_items_failure_raises_fetch_error(self):
        _, service = self.service({ITEMS_PATH: RemoteServiceError("boom", 500)})

        with pytest.raises(FetchError, match="Error fetching filtered pages"):
            service.fetch_enriched_page(make_request())

    def test_subscription_failure_raises_fetch_error(self, record_factory):
        _, service = self.service(
            {
                ITEMS_PATH: {"value": [record_factory(1, "a")]},
                "_api/web/currentuser": RemoteServiceError("denied", 403),
            }
        )

        with pytest.raises(FetchError):
            service.fetch_enriched_page(make_request())

    def test_unexpected_payload_raises_fetch_error(self):
        _, service = self.service({ITEMS_PATH: {"odata.error": "x"}})

        with pytest.raises(FetchError):
            service.fetch_enriched_page(make_request())

    def test_list_details(self):
        path = "_api/web/lists/getbytitle('Site Pages')"
        _, service = self.service({path: {"d": {"Id": "abc", "Title": "Site Pages"}}})

        assert service.get_list_details()["Id"] == "abc"

    def test_list_details_failure(self):
        path = "_api/web/lists/getbytitle('Site Pages')"
        _, service = self.service({path: RemoteServiceError("gone", 404)})

        with pytest.raises(FetchError, match="Site Pages"):
            service.get_list_details()

    def test_links(self):
        _, service = self.service({})

        assert service.subscribe_link("L1", 5) == f"{SITE}/_layouts/15/SubNew.aspx?List=L1&Id=5"
        assert service.manage_alerts_link("https://x/a b").endswith(
            "mySubs.aspx?source=https%3A%2F%2Fx%2Fa%20b"
        )

    def test_malformed_alert_raises_fetch_error(self):
        _, service = self.service(
            {
                ITEMS_PATH: {"value": [{"FileRef": "/a/b.aspx"}]},
                "_api/web/currentuser": {"Id": 3},
                "_api/web/alerts": {"value": ["oops"]},
            }
        )

        with pytest.raises(FetchError, match="Error fetching filtered pages"):
            service.fetch_enriched_page(make_request())

    def test_malformed_item_raises_fetch_error(self):
        _, service = self.service(
            {
                ITEMS_PATH: {"value": ["oops"]},
                "_api/web/currentuser": {"Id": 3},
                "_api/web/alerts": {"value": []},
            }
        )

        with pytest.raises(FetchError):
            service.fetch_enriched_page(make_request())


class TestClientFromConfig:
    def test_request_timeout_reaches_session(self):
        session = MagicMock()
        session.get.return_value = json_response({"Id": 1})
        config = BrowserConfig(site_url=SITE, request_timeout=7.5)

        client = SharePointClient.from_config(config, session=session)
        client.get_json("_api/web/currentuser")

        assert client.site_url == SITE
        assert session.get.call_args.kwargs["timeout"] == 7.5
