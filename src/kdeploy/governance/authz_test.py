from unittest.mock import MagicMock

import pytest
import requests

from kdeploy.errors import AuthorizationError
from kdeploy.governance import GovernanceContext
from kdeploy.governance.authz import AppManagerEndpoint, check_namespace, fetch_allowed_namespaces
from kdeploy.manifest import Manifest, ManifestDocument

GOVERNANCE = GovernanceContext(app_code="shop-app", tenant_code="acme", project_name="shop")


def _document(kind: str, namespace: str | None) -> ManifestDocument:
    metadata = {"name": "x"} if namespace is None else {"name": "x", "namespace": namespace}
    return ManifestDocument(Manifest({"apiVersion": "v1", "kind": kind, "metadata": metadata}))


def test__check_namespace__allowed() -> None:
    check_namespace(_document("ConfigMap", "team-a"), frozenset({"team-a", "team-b"}), GOVERNANCE)


def test__check_namespace__not_in_allow_set() -> None:
    with pytest.raises(AuthorizationError) as excinfo:
        check_namespace(_document("ConfigMap", "kube-system"), frozenset({"team-a"}), GOVERNANCE)
    assert excinfo.value.namespace == "kube-system"


def test__check_namespace__missing_namespace() -> None:
    with pytest.raises(AuthorizationError):
        check_namespace(_document("ConfigMap", None), frozenset({"team-a"}), GOVERNANCE)


def test__check_namespace__no_allow_set() -> None:
    with pytest.raises(AuthorizationError):
        check_namespace(_document("ConfigMap", "team-a"), None, GOVERNANCE)


def test__check_namespace__bypassed_without_governance() -> None:
    check_namespace(_document("ConfigMap", "kube-system"), frozenset(), GovernanceContext())
    check_namespace(_document("ConfigMap", None), None, GovernanceContext())


def test__check_namespace__namespaces_bypass_the_gate() -> None:
    check_namespace(_document("Namespace", None), frozenset(), GOVERNANCE)


def _session(status_code: int = 200, body: object = None) -> MagicMock:
    session = MagicMock()
    response = session.post.return_value
    response.status_code = status_code
    response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return session


def test__fetch_allowed_namespaces() -> None:
    session = _session(body={"code": 200, "msg": "ok", "data": {"namespaces": ["team-a", "team-b"]}})

    assert fetch_allowed_namespaces("https://apps.example/", "ci", "s3cret", session) == {"team-a", "team-b"}

    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args == ("https://apps.example/login",)
    assert kwargs["params"] == {"username": "ci", "password": "s3cret"}


def test__fetch_allowed_namespaces__login_rejected() -> None:
    session = _session(body={"code": 401, "msg": "bad credentials", "data": None})
    with pytest.raises(AuthorizationError, match="bad credentials"):
        fetch_allowed_namespaces("https://apps.example", "ci", "wrong", session)


def test__fetch_allowed_namespaces__http_error() -> None:
    with pytest.raises(AuthorizationError):
        fetch_allowed_namespaces("https://apps.example", "ci", "s3cret", _session(status_code=502))


def test__fetch_allowed_namespaces__no_namespaces() -> None:
    session = _session(body={"code": 200, "data": {}})
    assert fetch_allowed_namespaces("https://apps.example", "ci", "s3cret", session) == frozenset()


def test__AppManagerEndpoint__fetch_allowed_namespaces() -> None:
    endpoint = AppManagerEndpoint(url="https://apps.example", username="ci", password="s3cret")
    session = _session(body={"code": 200, "data": {"namespaces": ["team-a"]}})

    assert endpoint.fetch_allowed_namespaces(session) == {"team-a"}
    assert session.post.call_args.kwargs["params"] == {"username": "ci", "password": "s3cret"}


@pytest.mark.parametrize("data", ["oops", ["team-a"]])
def test__fetch_allowed_namespaces__invalid_data(data: object) -> None:
    session = _session(body={"code": 200, "data": data})
    with pytest.raises(AuthorizationError, match="invalid response"):
        fetch_allowed_namespaces("https://apps.example", "ci", "s3cret", session)
