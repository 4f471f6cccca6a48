"""Tests for the reasoning strategy catalog."""

from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from paramind.tools.strategies import (
    DEFAULT_STRATEGY_IDS,
    ReasoningStrategy,
    StrategyCatalog,
    load_catalog,
)
from paramind.utils.errors import ConfigException, UnknownStrategyError


def _write_catalog(path: Path, data: dict) -> Path:
    path.write_bytes(orjson.dumps(data))
    return path


def _entry(strategy_id: str, weight: float = 1.0) -> dict:
    return {
        "id": strategy_id,
        "name": strategy_id.title(),
        "description": "test strategy",
        "prompt": f"Think like {strategy_id}.",
        "weight": weight,
    }


class TestBuiltinCatalog:
    """Tests for the built-in strategy set."""

    def test_has_ten_strategies(self, catalog: StrategyCatalog) -> None:
        """Ten strategies ship by default."""
        assert len(catalog) == 10
        assert catalog.version == "2025.1"

    def test_weights(self, catalog: StrategyCatalog) -> None:
        """Weights match the published table."""
        expected = {
            "analytical": 1.2,
            "pattern_matching": 1.1,
            "first_principles": 1.3,
            "reverse_engineering": 1.0,
            "lateral_thinking": 0.9,
            "domain_expert": 1.2,
            "error_analysis": 1.1,
            "performance_first": 1.0,
            "user_centric": 0.9,
            "security_focused": 1.1,
        }
        assert {s.id: s.weight for s in catalog} == expected

    def test_all_weights_in_range(self, catalog: StrategyCatalog) -> None:
        """Every weight lies within [0.9, 1.3]."""
        assert all(0.9 <= s.weight <= 1.3 for s in catalog)

    def test_default_subset(self, catalog: StrategyCatalog) -> None:
        """Default selection is the four-strategy subset."""
        assert catalog.default_ids == DEFAULT_STRATEGY_IDS
        assert catalog.default_ids == (
            "analytical",
            "pattern_matching",
            "first_principles",
            "domain_expert",
        )

    def test_get_missing_returns_none(self, catalog: StrategyCatalog) -> None:
        """Lookup of an unknown id yields None."""
        assert catalog.get("nope") is None
        assert "nope" not in catalog
        assert "analytical" in catalog

    def test_require_preserves_order(self, catalog: StrategyCatalog) -> None:
        """require returns strategies in the requested order."""
        strategies = catalog.require(["security_focused", "analytical"])
        assert [s.id for s in strategies] == ["security_focused", "analytical"]

    def test_require_reports_all_missing(self, catalog: StrategyCatalog) -> None:
        """Every unknown id is carried by the error."""
        with pytest.raises(UnknownStrategyError) as exc_info:
            catalog.require(["analytical", "bogus", "other"])
        assert exc_info.value.strategy_ids == ("bogus", "other")

    def test_weight_of_unknown_is_one(self, catalog: StrategyCatalog) -> None:
        """Strategies outside the catalog vote with weight 1.0."""
        assert catalog.weight_of("unknown") == 1.0
        assert catalog.weight_of("first_principles") == 1.3

    def test_strategies_are_immutable(self, catalog: StrategyCatalog) -> None:
        """Strategy records cannot be modified."""
        strategy = catalog.get("analytical")
        assert strategy is not None
        with pytest.raises(AttributeError):
            strategy.weight = 2.0  # type: ignore[misc]

    def test_to_dict(self, catalog: StrategyCatalog) -> None:
        """Serialization lists every strategy."""
        data = catalog.to_dict()
        assert data["version"] == "2025.1"
        assert len(data["strategies"]) == 10


class TestCatalogValidation:
    """Tests for catalog construction checks."""

    def test_weight_out_of_range(self) -> None:
        """Weights outside [0.9, 1.3] are rejected."""
        strategy = ReasoningStrategy("x", "X", "", "prompt", 1.5)
        with pytest.raises(ConfigException, match="weight"):
            StrategyCatalog([strategy], version="t", default_ids=["x"])

    def test_duplicate_ids(self) -> None:
        """Duplicate strategy ids are rejected."""
        strategy = ReasoningStrategy("x", "X", "", "prompt", 1.0)
        with pytest.raises(ConfigException, match="Duplicate"):
            StrategyCatalog([strategy, strategy], version="t", default_ids=["x"])

    def test_unknown_default(self) -> None:
        """Defaults must exist in the catalog."""
        strategy = ReasoningStrategy("x", "X", "", "prompt", 1.0)
        with pytest.raises(ConfigException, match="Default"):
            StrategyCatalog([strategy], version="t", default_ids=["y"])


class TestCatalogFile:
    """Tests for loading catalogs from JSON files."""

    def test_from_file(self, tmp_path: Path) -> None:
        """A valid file produces a catalog with its version and defaults."""
        path = _write_catalog(
            tmp_path / "catalog.json",
            {
                "version": "custom-1",
                "default_strategies": ["alpha"],
                "strategies": [_entry("alpha", 1.1), _entry("beta", 0.9)],
            },
        )
        catalog = StrategyCatalog.from_file(path)
        assert catalog.version == "custom-1"
        assert catalog.default_ids == ("alpha",)
        assert catalog.get("beta") is not None
        assert catalog.get("alpha").prompt_template == "Think like alpha."  # type: ignore[union-attr]

    def test_from_file_bad_weight(self, tmp_path: Path) -> None:
        """File weights are validated."""
        path = _write_catalog(
            tmp_path / "catalog.json",
            {"version": "1", "default_strategies": ["a"], "strategies": [_entry("a", 0.5)]},
        )
        with pytest.raises(ConfigException):
            StrategyCatalog.from_file(path)

    def test_from_file_missing_field(self, tmp_path: Path) -> None:
        """Entries without a prompt are rejected."""
        entry = _entry("a")
        del entry["prompt"]
        path = _write_catalog(tmp_path / "catalog.json", {"strategies": [entry]})
        with pytest.raises(ConfigException, match="Malformed"):
            StrategyCatalog.from_file(path)

    def test_from_file_invalid_json(self, tmp_path: Path) -> None:
        """Unparseable files raise ConfigException."""
        path = tmp_path / "catalog.json"
        path.write_text("{not json")
        with pytest.raises(ConfigException, match="Invalid JSON"):
            StrategyCatalog.from_file(path)

    def test_from_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises ConfigException."""
        with pytest.raises(ConfigException, match="Cannot read"):
            StrategyCatalog.from_file(tmp_path / "absent.json")

    def test_load_catalog_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without STRATEGY_CATALOG_PATH the built-in catalog is used."""
        monkeypatch.delenv("STRATEGY_CATALOG_PATH", raising=False)
        assert load_catalog().version == "2025.1"

    def test_load_catalog_from_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """STRATEGY_CATALOG_PATH selects a file catalog."""
        path = _write_catalog(
            tmp_path / "catalog.json",
            {"version": "env", "default_strategies": ["a"], "strategies": [_entry("a")]},
        )
        monkeypatch.setenv("STRATEGY_CATALOG_PATH", str(path))
        assert load_catalog().version == "env"
