import pytest

from typewire import Container, NullFactory, ResolutionError, UnknownDependencyError, service


@service
class Ping:
    def __init__(self, pong: "Pong"):
        self.pong = pong


@service
class Pong:
    def __init__(self, ping: Ping):
        self.ping = ping


def test_get_unset_string_token_raises():
    c = Container()
    with pytest.raises(UnknownDependencyError):
        c.get("unknown-token")


def test_unknown_dependency_is_a_resolution_error():
    c = Container()
    with pytest.raises(ResolutionError):
        c.get("unknown-token")


def test_get_class_without_service_marker_raises():
    c = Container()

    class NotAService: ...

    with pytest.raises(UnknownDependencyError) as ctx:
        c.get(NotAService)
    assert "NotAService is not a service" in str(ctx.value)


def test_get_subclass_of_service_without_own_marker_raises():
    c = Container()

    @service
    class Base: ...

    class Derived(Base): ...

    assert isinstance(c.get(Base), Base)
    with pytest.raises(UnknownDependencyError):
        c.get(Derived)


def test_get_builds_simple_service():
    c = Container()

    @service
    class A: ...

    obj = c.get(A)
    assert isinstance(obj, A)


def test_get_wires_constructor_recursively():
    c = Container()

    @service
    class DB: ...

    @service
    class Repo:
        def __init__(self, db: DB):
            self.db = db

    @service
    class Svc:
        def __init__(self, repo: Repo):
            self.repo = repo

    svc = c.get(Svc)
    assert isinstance(svc, Svc)
    assert isinstance(svc.repo, Repo)
    assert isinstance(svc.repo.db, DB)


def test_service_can_be_declared_without_decorator_syntax():
    c = Container()

    class ThirdPartyClient: ...

    service(ThirdPartyClient, singleton=True)

    assert c.get(ThirdPartyClient) is c.get(ThirdPartyClient)


def test_service_marker_rejects_non_classes():
    with pytest.raises(TypeError):
        service(lambda: None)


def test_set_token_then_get_returns_value():
    c = Container()
    value = object()

    c.set("config", value)

    assert c.has("config")
    assert c.get("config") is value


def test_token_may_hold_none():
    c = Container()
    c.set("nothing", None)
    assert c.has("nothing")
    assert c.get("nothing") is None


def test_remove_token():
    c = Container()
    c.set("config", 1)

    c.remove("config")

    assert not c.has("config")
    with pytest.raises(UnknownDependencyError):
        c.get("config")


def test_remove_missing_keys_is_noop():
    c = Container()

    class A: ...

    c.remove("missing")
    c.remove(A)
    assert not c.has("missing")
    assert not c.has(A)


def test_tokens_and_types_are_separate_namespaces():
    c = Container()

    @service(singleton=True)
    class A: ...

    c.set("A", "a token")
    a = c.get(A)

    assert c.get("A") == "a token"
    assert c.has(A)
    c.remove("A")
    assert c.has(A)
    assert c.get(A) is a


def test_set_type_pre_seeds_singleton():
    c = Container()

    @service(singleton=True)
    class A: ...

    seeded = A()
    c.set(A, seeded)

    assert c.has(A)
    assert c.get(A) is seeded


def test_reset_clears_types_and_tokens():
    c = Container()

    @service(singleton=True)
    class A: ...

    @service(singleton=True)
    class B: ...

    a = c.get(A)
    c.get(B)
    c.set("token", 1)

    c.reset()

    assert not c.has(A)
    assert not c.has(B)
    assert not c.has("token")
    assert c.get(A) is not a


def test_reset_drops_construction_locks():
    c = Container()

    @service(singleton=True)
    class A: ...

    c.get(A)
    assert A in c._construction_locks

    c.reset()

    assert c._construction_locks == {}
    assert isinstance(c.get(A), A)


def test_explicit_get_uses_given_lifetime_without_reading_marker():
    c = Container()

    class Plain: ...

    a1 = c.get(Plain, True)
    a2 = c.get(Plain, True, None)
    assert a1 is a2
    assert c.has(Plain)

    assert c.get(Plain, False) is not c.get(Plain, False)


def test_explicit_null_factory_matches_absent_factory():
    c = Container()

    @service
    class Dep: ...

    class Target:
        def __init__(self, dep: Dep):
            self.dep = dep

    built_with_instance = c.get(Target, False, NullFactory())
    built_with_none = c.get(Target, False, None)

    assert isinstance(built_with_instance, Target)
    assert isinstance(built_with_instance.dep, Dep)
    assert isinstance(built_with_none.dep, Dep)


def test_token_get_rejects_lifetime_arguments():
    c = Container()
    c.set("token", 1)
    with pytest.raises(TypeError):
        c.get("token", True)


def test_factory_without_lifetime_is_rejected():
    c = Container()

    @service
    class A: ...

    class AFactory:
        def create(self):
            return A()

    with pytest.raises(TypeError):
        c.get(A, factory=AFactory())


def test_containers_are_isolated():
    c1 = Container()
    c2 = Container()

    @service(singleton=True)
    class A: ...

    c1.set("token", 1)

    assert c1.get(A) is not c2.get(A)
    assert not c2.has("token")


def test_cycle_surfaces_as_recursion_error():
    c = Container()

    with pytest.raises(RecursionError):
        c.get(Ping)
