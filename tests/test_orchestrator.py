"""Tests for apibuilder.orchestrator -- the generate and clean workflows."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from apibuilder.exceptions import BatchError, SpecParseError, TemplateMismatchError
from apibuilder.models import BuilderConfig
from apibuilder.orchestrator import clean, generate

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _write_spec(project: Path, name: str, data: object) -> Path:
    path = project / "api-builder" / "json" / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestGenerate:
    def test_generates_every_spec(self, config: BuilderConfig, project: Path, quiet_output) -> None:
        result = generate(config)
        assert result.ok
        assert [p.name for p in result.processed] == ["roles-v1.json", "users-v1.json"]
        assert sorted(p.relative_to(project).as_posix() for p in result.written) == [
            "src/builder/roles/v1/roles-v1.routes.ts",
            "src/builder/users/v1/users-v1.routes.ts",
        ]
        aggregator = config.aggregator_path.read_text(encoding="utf-8")
        assert 'import rolesV1Routes from "./builder/roles/v1/roles-v1.routes";' in aggregator
        assert 'import usersV1Routes from "./builder/users/v1/users-v1.routes";' in aggregator
        assert "  .use(authRoutes)\n  .use(rolesV1Routes)\n  .use(usersV1Routes)\n" in aggregator

    def test_idempotent(self, config: BuilderConfig, quiet_output) -> None:
        generate(config)
        first_aggregator = config.aggregator_path.read_text(encoding="utf-8")
        module = config.output_path / "roles" / "v1" / "roles-v1.routes.ts"
        first_module = module.read_text(encoding="utf-8")

        generate(config)
        assert config.aggregator_path.read_text(encoding="utf-8") == first_aggregator
        assert module.read_text(encoding="utf-8") == first_module

    def test_end_to_end_example(self, project: Path, quiet_output) -> None:
        for spec in (project / "api-builder" / "json").iterdir():
            spec.unlink()
        _write_spec(
            project,
            "roles.json",
            {
                "module": "roles",
                "version": "v1",
                "routes": [{"path": "/:id", "method": "GET", "handler": {"query": "SELECT id FROM roles WHERE id = :id"}}],
            },
        )
        config = BuilderConfig(root=project)
        before = config.aggregator_path.read_text(encoding="utf-8")

        generate(config)

        module = (config.output_path / "roles" / "v1" / "roles-v1.routes.ts").read_text(encoding="utf-8")
        assert 'const rolesV1Routes = new Elysia({ prefix: "/roles/v1" })' in module
        assert '  .get("/:id", ({ params: { id } }) => {' in module
        assert 'return findOneById(id, "SELECT id FROM roles WHERE id = :id");' in module
        assert module.endswith("export default rolesV1Routes;\n")

        after = config.aggregator_path.read_text(encoding="utf-8")
        added = [line for line in after.split("\n") if line not in before.split("\n")]
        assert added == [
            'import rolesV1Routes from "./builder/roles/v1/roles-v1.routes";',
            "  .use(rolesV1Routes)",
        ]

    def test_missing_specs_directory(self, project: Path, plain_output, capsys: pytest.CaptureFixture[str]) -> None:
        config = BuilderConfig(root=project, specs_dir="nowhere")
        result = generate(config)
        assert result.ok
        assert result.processed == []
        assert "No spec documents found in nowhere" in capsys.readouterr().err

    def test_fail_fast_aborts_batch(self, config: BuilderConfig, project: Path, quiet_output) -> None:
        _write_spec(project, "alpha-v1.json", {"module": "alpha", "version": "v1"})
        with pytest.raises(SpecParseError, match="routes"):
            generate(config)
        assert not config.output_path.exists()

    def test_template_mismatch_aborts(self, config: BuilderConfig, project: Path, quiet_output) -> None:
        _write_spec(
            project,
            "alpha-v1.json",
            {
                "module": "alpha",
                "version": "v1",
                "routes": [
                    {
                        "path": "/find",
                        "handler": {"requestType": "findOne", "query": "SELECT 1", "conditions": {"a": {"operator": "="}}},
                    }
                ],
            },
        )
        with pytest.raises(TemplateMismatchError):
            generate(config)

    def test_keep_going_collects_failures(
        self, project: Path, plain_output, capsys: pytest.CaptureFixture[str]
    ) -> None:
        _write_spec(project, "alpha-v1.json", {"module": "alpha", "version": "v1"})
        config = BuilderConfig(root=project, fail_fast=False)
        with pytest.raises(BatchError, match="1 of 3 spec"):
            generate(config)
        assert (config.output_path / "roles" / "v1" / "roles-v1.routes.ts").is_file()
        assert (config.output_path / "users" / "v1" / "users-v1.routes.ts").is_file()
        assert "alpha-v1.json" in capsys.readouterr().err

    def test_missing_aggregator_is_not_fatal(
        self, config: BuilderConfig, plain_output, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config.aggregator_path.unlink()
        result = generate(config)
        assert result.ok
        assert len(result.written) == 2
        err = capsys.readouterr().err
        assert err.count("Aggregator file not found") == 1

    def test_yaml_specs_when_configured(self, project: Path, quiet_output) -> None:
        (project / "api-builder" / "json" / "tags-v1.yaml").write_text(
            "module: tags\nversion: v1\nroutes:\n  - path: /:id\n    handler:\n      query: SELECT 1\n",
            encoding="utf-8",
        )
        config = BuilderConfig(root=project, spec_extensions=[".json", ".yaml"])
        result = generate(config)
        assert [p.name for p in result.processed] == ["roles-v1.json", "tags-v1.yaml", "users-v1.json"]
        assert "tagsV1Routes" in config.aggregator_path.read_text(encoding="utf-8")


class TestClean:
    def test_round_trip(self, config: BuilderConfig, quiet_output) -> None:
        original = config.aggregator_path.read_text(encoding="utf-8")
        generate(config)
        result = clean(config)

        assert config.aggregator_path.read_text(encoding="utf-8") == original
        assert config.output_path.is_dir()
        assert list(config.output_path.iterdir()) == []
        assert result.removed_imports == 2
        assert result.removed_uses == 2
        assert sorted(m.variable_name for m in result.manifests) == ["rolesV1Routes", "usersV1Routes"]
        assert sorted(p.name for p in result.removed_paths) == ["roles", "users"]

    def test_prefix_fallback_without_manifests(self, config: BuilderConfig, quiet_output) -> None:
        original = config.aggregator_path.read_text(encoding="utf-8")
        generate(config)
        for manifest in config.output_path.rglob("*.manifest.json"):
            manifest.unlink()
        clean(config)
        assert config.aggregator_path.read_text(encoding="utf-8") == original

    def test_manifest_mode_keeps_unknown_imports(self, project: Path, quiet_output) -> None:
        aggregator = project / "src" / "index.ts"
        text = aggregator.read_text(encoding="utf-8").replace(
            'import authRoutes from "./core/auth/auth.routes";',
            'import authRoutes from "./core/auth/auth.routes";\n'
            'import oldV1Routes from "./builder/old/v1/old-v1.routes";',
        )
        aggregator.write_text(text, encoding="utf-8")
        config = BuilderConfig(root=project, clean_match="manifest")
        generate(config)
        clean(config)
        assert aggregator.read_text(encoding="utf-8") == text

    def test_clean_without_aggregator(
        self, config: BuilderConfig, plain_output, capsys: pytest.CaptureFixture[str]
    ) -> None:
        generate(config)
        config.aggregator_path.unlink()
        result = clean(config)
        assert result.removed_imports == 0
        assert list(config.output_path.iterdir()) == []
        assert "nothing to unregister" in capsys.readouterr().err

    def test_clean_on_fresh_project(self, config: BuilderConfig, aggregator_text: str, quiet_output) -> None:
        result = clean(config)
        assert result.removed_paths == []
        assert config.aggregator_path.read_text(encoding="utf-8") == aggregator_text
