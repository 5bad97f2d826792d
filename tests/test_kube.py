from unittest.mock import MagicMock

import pytest
from kubernetes.client import ApiException

from kieapp_operator.config import OperatorSettings
from kieapp_operator.errors import AlreadyExistsError, ClusterError, ConflictError, NotFoundError
from kieapp_operator.kube import KieAppAPI
from kieapp_operator.resources.base import Kind, Resource


def _build_service() -> Resource:
    return Resource(
        kind=Kind.SERVICE,
        metadata={"name": "example", "namespace": "demo", "resourceVersion": "7", "uid": "abc"},
        spec={"ports": [{"port": 8080}]},
    )


def _make_api():
    api = KieAppAPI.__new__(KieAppAPI)
    api.settings = OperatorSettings(namespace="demo")
    api.dynamic = MagicMock()
    resource = MagicMock()
    api.dynamic.resources.get.return_value = resource
    return api, resource


def test_get_translates_not_found():
    api, resource = _make_api()
    resource.get.side_effect = ApiException(status=404, reason="not found")

    with pytest.raises(NotFoundError):
        api.get(Kind.SECRET, "missing", "demo")


def test_get_translates_other_errors():
    api, resource = _make_api()
    resource.get.side_effect = ApiException(status=403, reason="forbidden")

    with pytest.raises(ClusterError) as excinfo:
        api.get(Kind.SECRET, "hidden", "demo")

    assert not isinstance(excinfo.value, NotFoundError)
    assert excinfo.value.status == 403


def test_list_fills_in_kind():
    api, resource = _make_api()
    resource.get.return_value = {"items": [{"metadata": {"name": "a"}}]}

    items = api.list(Kind.ROUTE, "demo")

    assert items == [{"apiVersion": "route.openshift.io/v1", "kind": "Route", "metadata": {"name": "a"}}]
    api.dynamic.resources.get.assert_called_with(api_version="route.openshift.io/v1", kind="Route")


def test_create_strips_server_metadata():
    api, resource = _make_api()
    resource.create.return_value = {"kind": "Service"}

    api.create(_build_service())

    body = resource.create.call_args.kwargs["body"]
    assert "resourceVersion" not in body["metadata"]
    assert "uid" not in body["metadata"]
    assert resource.create.call_args.kwargs["namespace"] == "demo"


def test_create_translates_conflict_to_already_exists():
    api, resource = _make_api()
    resource.create.side_effect = ApiException(status=409, reason="conflict")

    with pytest.raises(AlreadyExistsError):
        api.create(_build_service())


def test_update_sends_expected_version():
    api, resource = _make_api()
    resource.replace.return_value = {"kind": "Service"}

    api.update(_build_service(), expected_version="3")

    kwargs = resource.replace.call_args.kwargs
    assert kwargs["body"]["metadata"]["resourceVersion"] == "3"
    assert kwargs["name"] == "example"


def test_update_translates_conflict():
    api, resource = _make_api()
    resource.replace.side_effect = ApiException(status=409, reason="conflict")

    with pytest.raises(ConflictError):
        api.update(_build_service(), expected_version="3")


def test_delete_ignores_missing():
    api, resource = _make_api()
    resource.delete.side_effect = ApiException(status=404, reason="not found")

    api.delete(Kind.SERVICE, "example", "demo")

    resource.delete.assert_called_once_with(name="example", namespace="demo")


def test_delete_raises_other_errors():
    api, resource = _make_api()
    resource.delete.side_effect = ApiException(status=500, reason="boom")

    with pytest.raises(ClusterError):
        api.delete(Kind.SERVICE, "example", "demo")
