"""Tests for specflow.runtime.catalog.InMemoryProjectCatalog."""

import yaml

from specflow.runtime.catalog import InMemoryProjectCatalog
from specflow.runtime.types import Dependency


class TestCreateComponentsWithDependencies:
    """Components parsed from a context design are upserted by module name."""

    def test_creates_children_and_edges(self, catalog, scope):
        saved = catalog.create_components_with_dependencies(
            scope,
            "proj-1",
            "comp-accounts",
            [
                {"name": "User", "module_name": "MyApp.Accounts.User", "type": "schema"},
                {"name": "UserRepository", "module_name": "MyApp.Accounts.UserRepository", "type": "repository"},
            ],
            [("MyApp.Accounts.UserRepository", "MyApp.Accounts.User")],
        )

        user, repo = saved
        assert user.id.startswith("comp-")
        assert user.parent_component_id == "comp-accounts"
        assert [c.module_name for c in catalog.list_child_components(scope, "comp-accounts")] == [
            "MyApp.Accounts.User",
            "MyApp.Accounts.UserRepository",
        ]
        assert catalog.list_dependencies(scope, repo.id) == [Dependency(repo.id, user.id)]

    def test_upsert_keeps_ids(self, catalog, scope):
        first = catalog.create_components_with_dependencies(
            scope, "proj-1", "comp-accounts", [{"module_name": "MyApp.Accounts.User", "type": "schema"}], []
        )
        second = catalog.create_components_with_dependencies(
            scope,
            "proj-1",
            "comp-accounts",
            [{"module_name": "MyApp.Accounts.User", "type": "schema", "description": "updated"}],
            [],
        )

        assert first[0].id == second[0].id
        assert second[0].name == "User"
        assert catalog.get_component(scope, first[0].id).description == "updated"
        assert len(catalog.list_child_components(scope, "comp-accounts")) == 1

    def test_unknown_dependency_modules_skipped(self, catalog, scope):
        catalog.create_components_with_dependencies(
            scope,
            "proj-1",
            "comp-accounts",
            [{"module_name": "MyApp.Accounts.User"}],
            [("MyApp.Accounts", "MyApp.Mailer"), ("MyApp.Accounts", "MyApp.Accounts.User")],
        )

        edges = catalog.list_dependencies(scope, "comp-accounts")
        assert len(edges) == 1
        assert edges[0].source_component_id == "comp-accounts"

    def test_edges_not_duplicated(self, catalog, scope):
        for _ in range(2):
            catalog.create_components_with_dependencies(
                scope,
                "proj-1",
                "comp-accounts",
                [{"module_name": "MyApp.Accounts.User"}],
                [("MyApp.Accounts", "MyApp.Accounts.User")],
            )

        assert len(catalog.list_dependencies(scope, "comp-accounts")) == 1


class TestLookups:
    def test_similar_components_share_type(self, catalog, scope, context_component):
        catalog.create_components_with_dependencies(
            scope,
            "proj-1",
            None,
            [{"module_name": "MyApp.Billing", "type": "context"}, {"module_name": "MyApp.Repo", "type": "other"}],
            [],
        )

        similar = catalog.list_similar_components(scope, context_component)

        assert [c.module_name for c in similar] == ["MyApp.Billing"]

    def test_stories_by_component(self, catalog, scope):
        assert [s.id for s in catalog.list_stories(scope, "comp-accounts")] == ["story-1"]
        assert catalog.list_stories(scope, "comp-other") == []

    def test_missing_ids(self, catalog, scope):
        assert catalog.get_component(scope, None) is None
        assert catalog.get_project(scope, "nope") is None


class TestFromYaml:
    def test_loads_seed_file(self, tmp_path, scope):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            yaml.safe_dump({
                "projects": [{"id": "p1", "name": "Shop", "module_name": "Shop"}],
                "components": [
                    {"id": "c1", "project_id": "p1", "name": "Orders", "module_name": "Shop.Orders", "type": "context"}
                ],
                "stories": [{"id": "s1", "title": "Checkout", "component_id": "c1"}],
                "dependencies": [{"source_component_id": "c1", "target_component_id": "c1"}],
            }),
            encoding="utf-8",
        )

        catalog = InMemoryProjectCatalog.from_yaml(path)

        assert catalog.get_project(scope, "p1").module_name == "Shop"
        assert catalog.get_component(scope, "c1").is_context
        assert catalog.list_stories(scope, "c1")[0].title == "Checkout"
        assert catalog.list_dependencies(scope, "c1") == [Dependency("c1", "c1")]
