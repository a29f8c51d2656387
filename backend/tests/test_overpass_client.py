from unittest.mock import MagicMock, patch

import pytest
import requests

from domain.errors import InvalidLocation, MalformedResponse, UpstreamUnavailable
from domain.models import Category, Coordinate
from services.overpass_client import OverpassClient, build_overpass_query

BERLIN = Coordinate(52.52, 13.405)


def _response(status_code=200, json_data=None, reason="OK"):
    resp = MagicMock()
    resp.status_code = status_code
    resp.reason = reason
    resp.json.return_value = json_data
    return resp


def test_build_overpass_query_selects_all_geometry_kinds():
    query = build_overpass_query(BERLIN, Category.PHARMACY)
    assert query.startswith("[out:json][timeout:50];")
    for kind in ("node", "way", "relation"):
        assert f'{kind}["amenity"="pharmacy"](around:50000,52.52,13.405);' in query
    assert query.rstrip().endswith("out center;")


def test_build_overpass_query_uses_radius():
    query = build_overpass_query(BERLIN, Category.HOSPITAL, radius_m=5000.4)
    assert "(around:5000,52.52,13.405)" in query
    assert 'node["amenity"="hospital"]' in query


@patch("services.overpass_client._session.post")
def test_fetch_features_posts_query_and_returns_elements(mock_post):
    elements = [{"type": "node", "id": 1, "lat": 52.5, "lon": 13.4, "tags": {"amenity": "hospital"}}]
    mock_post.return_value = _response(json_data={"version": 0.6, "elements": elements})

    client = OverpassClient(timeout=7.5, user_agent="care-locator-tests")
    result = client.fetch_features(BERLIN, Category.HOSPITAL)

    assert result == elements
    args, kwargs = mock_post.call_args
    assert args[0] == "https://overpass-api.de/api/interpreter"
    assert 'node["amenity"="hospital"]' in kwargs["data"]["data"]
    assert kwargs["timeout"] == 7.5
    assert kwargs["headers"]["User-Agent"] == "care-locator-tests"


@patch("services.overpass_client._session.post")
def test_fetch_features_default_timeout_is_ten_seconds(mock_post):
    mock_post.return_value = _response(json_data={"elements": []})

    OverpassClient().fetch_features(BERLIN, Category.HOSPITAL)

    assert mock_post.call_count == 1
    _, kwargs = mock_post.call_args
    assert kwargs["timeout"] == 10.0


@patch("services.overpass_client._session.get")
def test_fetch_features_get_method_sends_data_param(mock_get):
    mock_get.return_value = _response(json_data={"elements": []})

    client = OverpassClient(method="GET")
    assert client.fetch_features(BERLIN, Category.PHARMACY) == []
    _, kwargs = mock_get.call_args
    assert 'way["amenity"="pharmacy"]' in kwargs["params"]["data"]


@patch("services.overpass_client._session.post")
def test_fetch_features_rejects_invalid_location_without_network(mock_post):
    client = OverpassClient()
    with pytest.raises(InvalidLocation):
        client.fetch_features({"lat": "52.5", "lng": 13.4}, Category.HOSPITAL)
    mock_post.assert_not_called()


@patch("services.overpass_client._session.post")
def test_fetch_features_non_success_status(mock_post):
    mock_post.return_value = _response(status_code=504, reason="Gateway Timeout")

    with pytest.raises(UpstreamUnavailable) as excinfo:
        OverpassClient().fetch_features(BERLIN, Category.HOSPITAL)
    assert excinfo.value.status_code == 504
    assert excinfo.value.description == "Gateway Timeout"
    assert mock_post.call_count == 1


@patch("services.overpass_client._session.post")
def test_fetch_features_transport_error(mock_post):
    mock_post.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(UpstreamUnavailable) as excinfo:
        OverpassClient().fetch_features(BERLIN, Category.PHARMACY)
    assert excinfo.value.status_code is None
    assert "connection refused" in excinfo.value.description
    assert mock_post.call_count == 1


@pytest.mark.parametrize("payload", [{}, {"elements": None}, {"elements": {"a": 1}}, ["not", "a", "dict"]])
@patch("services.overpass_client._session.post")
def test_fetch_features_malformed_payload(mock_post, payload):
    mock_post.return_value = _response(json_data=payload)
    with pytest.raises(MalformedResponse):
        OverpassClient().fetch_features(BERLIN, Category.HOSPITAL)


@patch("services.overpass_client._session.post")
def test_fetch_features_non_json_body(mock_post):
    resp = _response()
    resp.json.side_effect = ValueError("Expecting value")
    mock_post.return_value = resp
    with pytest.raises(MalformedResponse):
        OverpassClient().fetch_features(BERLIN, Category.HOSPITAL)


def test_client_rejects_unknown_method():
    with pytest.raises(ValueError):
        OverpassClient(method="put")
