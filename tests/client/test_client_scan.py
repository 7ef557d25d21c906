# tests/client/test_client_scan.py

import json

import pytest
import requests
from unittest.mock import MagicMock, patch

from client_lib import display, scan


@pytest.fixture
def mock_session():
    with patch("client_lib.config.SESSION") as session:
        yield session


@pytest.fixture
def aws_env():
    with patch("client_lib.config.AWS_ACCESS_KEY_ID", "AKIA"), \
         patch("client_lib.config.AWS_SECRET_ACCESS_KEY", "secret"), \
         patch("client_lib.config.AWS_SESSION_TOKEN", None), \
         patch("client_lib.config.AWS_REGION", "eu-west-1"):
        yield


def _response(status_code, body):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = json.dumps(body)
    return response


def test_check_health(mock_session):
    mock_session.get.return_value = _response(200, {"status": "healthy", "version": "1.0.0"})
    assert scan.check_health() == {"status": "healthy", "version": "1.0.0"}

    mock_session.get.side_effect = requests.exceptions.ConnectionError("refused")
    assert scan.check_health() is None


def test_list_regions(mock_session):
    mock_session.get.return_value = _response(200, {"regions": [{"code": "us-east-1", "name": "US East (N. Virginia)"}]})

    assert scan.list_regions() == [{"code": "us-east-1", "name": "US East (N. Virginia)"}]


def test_run_scan_payload(mock_session, aws_env):
    mock_session.post.return_value = _response(200, {"success": True, "data": {"nodes": []}})

    graph = scan.run_scan(services=["vpc"], view_mode="infrastructure", include_pricing=False)

    assert graph == {"nodes": []}
    _, kwargs = mock_session.post.call_args
    assert kwargs["json"] == {
        "credentials": {"access_key_id": "AKIA", "secret_access_key": "secret", "region": "eu-west-1"},
        "view_mode": "infrastructure",
        "services": ["vpc"],
        "include_pricing": False,
    }


def test_run_scan_error_body(mock_session, aws_env, capsys):
    mock_session.post.return_value = _response(400, {"success": False, "error": "AWS Connection Error: bad token"})

    assert scan.run_scan() is None
    assert "bad token" in capsys.readouterr().out


def test_run_scan_requires_credentials(mock_session):
    with patch("client_lib.config.AWS_ACCESS_KEY_ID", None):
        assert scan.run_scan() is None
    mock_session.post.assert_not_called()


def test_show_summary_and_write_graph(tmp_path, capsys):
    graph = {
        "view_mode": "business-flow",
        "metadata": {"region": "us-east-1", "total_resources": 2, "resource_counts": {"vpc": 1, "subnet": 0},
                     "layer_counts": {"1": 0, "5": 1}},
        "nodes": [{"id": "vpc-1"}],
        "links": [],
        "flow_paths": [{"name": "igw-1 to db", "node_ids": ["igw-1", "db"], "flow_type": "data", "criticality": "high"}],
        "cost_summary": {"total": 45.0, "breakdown": [{"category": "Database", "amount": 45.0, "percentage": 100.0}]},
    }

    display.show_summary(graph)
    out = capsys.readouterr().out
    assert "Total resources: 2" in out
    assert "[HIGH] igw-1 to db" in out
    assert "$45.00" in out
    assert "subnet" not in out

    target = tmp_path / "graph.json"
    display.write_graph(graph, str(target))
    assert json.loads(target.read_text()) == graph
