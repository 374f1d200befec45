import json
from unittest.mock import patch

from domain.models import CandidateLocation
from scripts import geocode_search
from services.geocoding import TransportFailure

BRIDGE = CandidateLocation(place_id="102", label="Golden Gate Bridge", lat=37.83, lon=-122.48)


@patch.object(geocode_search.GeocodeClient, "search", return_value=[BRIDGE])
def test_cli_prints_ranked_lines(mock_search, capsys):
    assert geocode_search.main(["Golden Gate", "--provider", "nominatim"]) == 0

    out = capsys.readouterr().out
    assert "1. Golden Gate Bridge" in out
    assert "[102]" in out
    mock_search.assert_called_once_with("Golden Gate")


@patch.object(geocode_search.GeocodeClient, "search", return_value=[BRIDGE])
def test_cli_json_output(mock_search, capsys):
    assert geocode_search.main(["Golden Gate", "--json"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload[0]["label"] == "Golden Gate Bridge"


@patch.object(geocode_search.GeocodeClient, "search", side_effect=TransportFailure("offline"))
def test_cli_failure_exit_code(mock_search):
    assert geocode_search.main(["Golden Gate"]) == 1


def test_cli_blank_query_exit_code():
    assert geocode_search.main(["   "]) == 2
