# === NAVMAP v1 ===
# {
#   "module": "tests.dispatch.test_registry",
#   "purpose": "Component registry lookup, construction errors and construct-once caching.",
#   "sections": [
#     {
#       "id": "testregistration",
#       "name": "TestRegistration",
#       "anchor": "class-testregistration",
#       "kind": "class"
#     },
#     {
#       "id": "testcomponentregistry",
#       "name": "TestComponentRegistry",
#       "anchor": "class-testcomponentregistry",
#       "kind": "class"
#     },
#     {
#       "id": "testbuilddispatcher",
#       "name": "TestBuildDispatcher",
#       "anchor": "class-testbuilddispatcher",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Named component construction from flat properties."""

from __future__ import annotations

import threading
import time

import pytest

from WaybackReplay.Dispatch.bootstrap import build_dispatcher
from WaybackReplay.Dispatch.closest import DefaultClosestSelector
from WaybackReplay.Dispatch.config.models import DispatchConfig, SniffingPolicy
from WaybackReplay.Dispatch.errors import ConfigurationError
from WaybackReplay.Dispatch.registry import (
    ComponentRegistry,
    get_factory,
    get_registry,
    parse_bool,
    register_component,
    register_factory,
    split_list,
)
from WaybackReplay.Dispatch.selectors import AlwaysSelector, MimeTypeSelector
from WaybackReplay.Dispatch.sniffers import CharsetSniffer, SignatureSniffer


class TestRegistration:
    def test_builtin_components_registered(self):
        registry = get_registry()

        for name in ("signature", "html-charset", "always", "mime-type", "redirect"):
            assert name in registry
        assert registry["default-closest"][0] == "closest"
        assert registry["selector-dispatcher"][0] == "dispatcher"

    def test_unknown_name_lists_available(self):
        with pytest.raises(ConfigurationError, match="Unknown component: 'nope'"):
            get_factory("nope")

    def test_decorator_without_from_properties(self, temporary_components):
        @register_component("test-plain")
        class Plain:
            pass

        temporary_components.append("test-plain")

        instance = ComponentRegistry({"thing.classname": "test-plain"}).get_instance("thing")

        assert isinstance(instance, Plain)
        assert Plain._registry_name == "test-plain"

    def test_register_factory_receives_sub_properties(self, temporary_components):
        seen = {}

        def factory(properties, registry):
            seen.update(properties)
            return "built"

        register_factory("test-factory", factory)
        temporary_components.append("test-factory")

        registry = ComponentRegistry(
            {
                "renderer.classname": "test-factory",
                "renderer.template": "banner.html",
                "renderer.inner.depth": "2",
                "other.template": "ignored",
            }
        )

        assert registry.get_instance("renderer") == "built"
        assert seen == {"template": "banner.html", "inner.depth": "2"}

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, []), ("", []), ("a, b,,c ", ["a", "b", "c"]), ("single", ["single"])],
    )
    def test_split_list(self, value, expected):
        assert split_list(value) == expected

    def test_parse_bool(self):
        assert parse_bool("Yes") is True
        assert parse_bool("0", default=True) is False
        assert parse_bool(None, default=True) is True
        assert parse_bool("  ", default=False) is False


class TestComponentRegistry:
    def test_missing_classname_is_configuration_error(self):
        registry = ComponentRegistry({"sniffer.peek_bytes": "10"})

        with pytest.raises(ConfigurationError) as exc_info:
            registry.get_instance("sniffer")

        assert exc_info.value.key == "sniffer.classname"
        assert registry.cached_namespaces() == []

    def test_unknown_classname_is_configuration_error(self):
        registry = ComponentRegistry({"sniffer.classname": "does-not-exist"})

        with pytest.raises(ConfigurationError) as exc_info:
            registry.get_instance("sniffer")

        assert exc_info.value.key == "sniffer.classname"

    def test_construction_failure_is_wrapped(self):
        registry = ComponentRegistry(
            {"sniffer.classname": "signature", "sniffer.peek_bytes": "-1"}
        )

        with pytest.raises(ConfigurationError, match="Failed to construct sniffer"):
            registry.get_instance("sniffer")

    def test_instances_are_cached(self):
        registry = ComponentRegistry({"sniffer.classname": "signature"})

        first = registry.get_instance("sniffer")

        assert first is registry.get_instance("sniffer")
        assert isinstance(first, SignatureSniffer)
        assert registry.cached_namespaces() == ["sniffer"]

    def test_peek_bytes_from_properties_and_config(self):
        registry = ComponentRegistry(
            {
                "a.classname": "signature",
                "a.peek_bytes": "64",
                "b.classname": "html-charset",
            },
            config=DispatchConfig(sniffing=SniffingPolicy(peek_bytes=512)),
        )

        assert registry.get_instance("a").peek_bytes == 64
        assert isinstance(registry.get_instance("b"), CharsetSniffer)
        assert registry.get_instance("b").peek_bytes == 512

    def test_nested_components_resolve(self):
        registry = ComponentRegistry(
            {
                "selector.html.classname": "mime-type",
                "selector.html.mime_contains": "text/html, application/xhtml",
                "selector.html.renderer": "renderer",
                "renderer.classname": "default-closest",
            }
        )

        selector = registry.get_instance("selector.html")

        assert isinstance(selector, MimeTypeSelector)
        assert selector.mime_contains == ("text/html", "application/xhtml")
        assert selector.renderer is registry.get_instance("renderer")

    def test_selector_without_renderer_fails(self):
        registry = ComponentRegistry({"selector.classname": "always"})

        with pytest.raises(ConfigurationError, match="renderer"):
            registry.get_instance("selector")

    def test_circular_reference_detected(self):
        registry = ComponentRegistry(
            {
                "a.classname": "always",
                "a.renderer": "b",
                "b.classname": "always",
                "b.renderer": "a",
            }
        )

        with pytest.raises(ConfigurationError, match="Circular component reference"):
            registry.get_instance("a")
        assert registry.cached_namespaces() == []

    def test_concurrent_first_access_constructs_once(self, temporary_components):
        constructed = []
        lock = threading.Lock()

        def slow_factory(properties, registry):
            time.sleep(0.05)
            instance = object()
            with lock:
                constructed.append(instance)
            return instance

        register_factory("test-slow", slow_factory)
        temporary_components.append("test-slow")
        registry = ComponentRegistry({"shared.classname": "test-slow"})

        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            value = registry.get_instance("shared")
            with lock:
                results.append(value)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(constructed) == 1
        assert len(results) == 8
        assert all(result is constructed[0] for result in results)

    def test_failed_construction_is_retried(self, temporary_components):
        attempts = []

        def flaky(properties, registry):
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("backend unavailable")
            return "ok"

        register_factory("test-flaky", flaky)
        temporary_components.append("test-flaky")
        registry = ComponentRegistry({"x.classname": "test-flaky"})

        with pytest.raises(ConfigurationError):
            registry.get_instance("x")
        assert registry.get_instance("x") == "ok"

    def test_circular_reference_across_threads(self, temporary_components):
        started_a = threading.Event()
        started_b = threading.Event()

        def build_a(properties, registry):
            started_a.set()
            started_b.wait(timeout=5)
            return registry.get_instance("b")

        def build_b(properties, registry):
            started_b.set()
            started_a.wait(timeout=5)
            return registry.get_instance("a")

        register_factory("test-cross-a", build_a)
        register_factory("test-cross-b", build_b)
        temporary_components.extend(["test-cross-a", "test-cross-b"])
        registry = ComponentRegistry({"a.classname": "test-cross-a", "b.classname": "test-cross-b"})

        errors = {}

        def worker(namespace):
            try:
                registry.get_instance(namespace)
            except ConfigurationError as e:
                errors[namespace] = e

        threads = [threading.Thread(target=worker, args=(ns,), daemon=True) for ns in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert not any(thread.is_alive() for thread in threads)
        assert set(errors) == {"a", "b"}
        assert all("Circular component reference" in str(e) for e in errors.values())
        assert registry.cached_namespaces() == []


class TestBuildDispatcher:
    def test_defaults(self):
        dispatcher, registry = build_dispatcher()

        assert dispatcher.selectors == ()
        assert [type(s) for s in dispatcher.sniffers] == [SignatureSniffer, CharsetSniffer]
        assert isinstance(dispatcher.closest_selector, DefaultClosestSelector)
        assert "dispatcher" in registry.cached_namespaces()

    def test_configured_selector_chain(self):
        config = DispatchConfig(
            components={
                "dispatcher": {"selectors": ["selector.html", "selector.any"]},
                "selector": {
                    "html": {"classname": "mime-type", "mime_contains": "html", "renderer": "r"},
                    "any": {"classname": "always", "renderer": "r"},
                },
                "r": {"classname": "default-closest"},
            }
        )

        dispatcher, registry = build_dispatcher(config)

        assert [type(s) for s in dispatcher.selectors] == [MimeTypeSelector, AlwaysSelector]
        assert dispatcher.selectors[0].renderer is dispatcher.selectors[1].renderer

    def test_policies_come_from_config(self):
        config = DispatchConfig(
            sniffing={"stop_on_first_match": True},
            closest={"prefer_2xx": False},
        )

        dispatcher, _registry = build_dispatcher(config)

        assert dispatcher.sniffing.stop_on_first_match is True
        assert dispatcher.closest_selector.prefer_2xx is False

    def test_overrides_win(self):
        dispatcher, _registry = build_dispatcher(
            overrides={"dispatcher.sniffers": "sniffer.signature", "closest.prefer_2xx": "false"}
        )

        assert [type(s) for s in dispatcher.sniffers] == [SignatureSniffer]
        assert dispatcher.closest_selector.prefer_2xx is False

    def test_non_dispatcher_namespace_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_dispatcher(namespace="closest")

        assert exc_info.value.key == "closest.classname"
