import pytest

from fake_cluster import FakeCluster
from kieapp_operator.compiler import ManifestCompiler
from kieapp_operator.resources.kieapp import KieApp
from samples import TEMPLATE, kieapp_body


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def compiler() -> ManifestCompiler:
    return ManifestCompiler(TEMPLATE)


@pytest.fixture
def kieapp() -> KieApp:
    return KieApp.from_dict(kieapp_body())
