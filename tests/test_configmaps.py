from kieapp_operator import constants
from kieapp_operator.configmaps import ConfigArtifactVersioner, backup_name, is_test_fixture
from kieapp_operator.resources.base import Kind, Resource
from kieapp_operator.resources.environment import Component, ComponentRole, Environment
from samples import NAMESPACE


def _config_map(name: str, data, **metadata) -> Resource:
    return Resource(
        kind=Kind.CONFIG_MAP,
        metadata={"name": name, "namespace": NAMESPACE, **metadata},
        extra={"data": data},
    )


def _versioned(data) -> Resource:
    return _config_map("kieconfigs", data, annotations={constants.API_GROUP: "7.5.1"})


def test_backup_name():
    assert backup_name(_versioned({})) == "kieconfigs-7.5.1-bak"
    assert backup_name(_config_map("kieconfigs", {})) == "kieconfigs-bak"


def test_is_test_fixture():
    assert is_test_fixture("kieconfigs-testdata")
    assert not is_test_fixture("kieconfigs")
    assert not is_test_fixture("testdata")


def test_missing_artifact_is_created(cluster):
    ConfigArtifactVersioner(cluster).reconcile_artifacts([_versioned({"a": "1"})])

    assert cluster.stored(Kind.CONFIG_MAP, "kieconfigs", NAMESPACE)["data"] == {"a": "1"}
    assert [verb for verb, *_ in cluster.writes()] == ["create"]


def test_unchanged_artifact_is_left_alone(cluster):
    cluster.seed(_versioned({"a": "1"}).to_dict())

    ConfigArtifactVersioner(cluster).reconcile_artifacts([_versioned({"a": "1"})])

    assert cluster.writes() == []


def test_drift_backs_up_the_live_config(cluster):
    live = _versioned({"a": "edited"}).with_metadata(ownerReferences=[{"kind": "KieApp", "uid": "uid-a"}])
    cluster.seed(live.to_dict())

    ConfigArtifactVersioner(cluster).reconcile_artifacts([_versioned({"a": "1"})])

    backup = cluster.stored(Kind.CONFIG_MAP, "kieconfigs-7.5.1-bak", NAMESPACE)
    assert backup["data"] == {"a": "edited"}
    assert "ownerReferences" not in backup["metadata"]
    assert cluster.stored(Kind.CONFIG_MAP, "kieconfigs", NAMESPACE)["data"] == {"a": "edited"}


def test_divergent_backup_is_overwritten(cluster):
    cluster.seed(_versioned({"a": "edited"}).to_dict())
    cluster.seed(_config_map("kieconfigs-7.5.1-bak", {"a": "older"}).to_dict())
    cluster.reset_calls()

    ConfigArtifactVersioner(cluster).reconcile_artifacts([_versioned({"a": "1"})])

    assert cluster.stored(Kind.CONFIG_MAP, "kieconfigs-7.5.1-bak", NAMESPACE)["data"] == {"a": "edited"}
    assert [(verb, name) for verb, _, name, _ in cluster.writes()] == [("update", "kieconfigs-7.5.1-bak")]


def test_test_fixtures_are_skipped(cluster):
    ConfigArtifactVersioner(cluster).reconcile_artifacts([_config_map("kieconfigs-testdata", {"a": "1"})])

    assert cluster.calls == []


def _server_environment(replicas: int) -> Environment:
    dc = Resource(
        kind=Kind.DEPLOYMENT_CONFIG,
        metadata={"name": "myapp-kieserver", "namespace": NAMESPACE},
        spec={"replicas": replicas},
    )
    return Environment(servers=[Component(ComponentRole.SERVER, [dc])])


def _server_config(name: str, owner: str, state: str = "USED"):
    return _config_map(
        name,
        {},
        labels={constants.KIE_SERVER_CM_LABEL: state},
        ownerReferences=[{"kind": "DeploymentConfig", "name": owner, "uid": f"{owner}-uid"}],
    ).to_dict()


def test_scaled_down_server_config_is_detached(cluster, kieapp):
    cluster.seed(_server_config("myapp-kieserver", "myapp-kieserver"))
    cluster.seed(_server_config("other-kieserver", "other-kieserver", state=constants.DETACHED))

    ConfigArtifactVersioner(cluster).detach_orphaned_server_configs(kieapp, _server_environment(0))

    labels = cluster.stored(Kind.CONFIG_MAP, "myapp-kieserver", NAMESPACE)["metadata"]["labels"]
    assert labels[constants.KIE_SERVER_CM_LABEL] == constants.DETACHED
    assert [(verb, name) for verb, _, name, _ in cluster.writes()] == [("update", "myapp-kieserver")]


def test_running_server_config_is_kept(cluster, kieapp):
    cluster.seed(_server_config("myapp-kieserver", "myapp-kieserver"))

    ConfigArtifactVersioner(cluster).detach_orphaned_server_configs(kieapp, _server_environment(1))

    assert cluster.writes() == []


def test_server_with_available_replicas_is_kept(cluster, kieapp):
    cluster.seed(_server_config("myapp-kieserver", "myapp-kieserver"))
    cluster.seed(
        {
            "apiVersion": "apps.openshift.io/v1",
            "kind": "DeploymentConfig",
            "metadata": {"name": "myapp-kieserver", "namespace": NAMESPACE},
            "status": {"availableReplicas": 1},
        }
    )

    ConfigArtifactVersioner(cluster).detach_orphaned_server_configs(kieapp, _server_environment(0))

    assert cluster.writes() == []


def test_detach_failures_are_not_raised(cluster, kieapp):
    cluster.fail("list", Kind.CONFIG_MAP)

    ConfigArtifactVersioner(cluster).detach_orphaned_server_configs(kieapp, _server_environment(0))

    assert cluster.writes() == []
