"""Tests for the transformer registry and geodesy contexts."""
import logging

import pytest

from geosurvey.config import GeodesyConfig, InputPolicy
from geosurvey.context import GeodesyContext, get_default_context, initialize_core
from geosurvey.coordinate import Coordinate
from geosurvey.datum_transformer import SimpleWGS84Transformer
from geosurvey.errors import TransformerNotImplementedError, UnknownTransformerError
from geosurvey.registry import TransformerRegistry, TransformerType


class TestTransformerType:
    def test_parse_names(self):
        assert TransformerType.parse("simple") is TransformerType.SIMPLE
        assert TransformerType.parse("PROJ") is TransformerType.PROJ
        assert TransformerType.parse(TransformerType.SIMPLE) is TransformerType.SIMPLE

    def test_legacy_alias(self):
        assert TransformerType.parse("proj4js") is TransformerType.PROJ

    def test_unknown(self):
        with pytest.raises(UnknownTransformerError, match="bogus"):
            TransformerType.parse("bogus")


class TestTransformerRegistry:
    def test_default_is_simple(self):
        assert isinstance(TransformerRegistry().get_transformer(), SimpleWGS84Transformer)

    def test_one_instance_per_type(self):
        registry = TransformerRegistry()
        assert registry.get_transformer() is registry.get_transformer("simple")

    def test_set_default_type_rejects_unknown(self):
        registry = TransformerRegistry()
        with pytest.raises(UnknownTransformerError):
            registry.set_default_type("bogus")
        assert registry.default_type is TransformerType.SIMPLE

    def test_proj_is_not_implemented(self, caplog):
        registry = TransformerRegistry()
        with caplog.at_level(logging.WARNING):
            with pytest.raises(TransformerNotImplementedError):
                registry.get_transformer("proj")
        assert "PROJ transformer" in caplog.text

    def test_proj_default_fails_on_use(self):
        registry = TransformerRegistry()
        registry.set_default_type("proj4js")
        with pytest.raises(NotImplementedError):
            registry.get_transformer()

    def test_availability(self):
        registry = TransformerRegistry()
        assert registry.is_available("simple")
        assert not registry.is_available("proj")
        assert not registry.is_available("bogus")

    def test_all_supported_projections(self):
        projections = TransformerRegistry().get_all_supported_projections()
        assert "WGS84" in projections["simple"]
        assert "UTM_NAD83_N" in projections["simple"]
        assert "EPSG:4326" in projections["proj"]

    def test_clear_cache_drops_instances_and_entries(self, context, denver):
        first = context.transformer
        denver.to_projection("NAD83")
        context.registry.clear_cache()
        assert len(context.transform_cache) == 0
        assert context.transformer is not first

    def test_transformers_share_registry_caches(self):
        registry = TransformerRegistry()
        assert registry.get_transformer().transform_cache is registry.transform_cache


class TestGeodesyContext:
    def test_coordinate_uses_default_context(self, context):
        c = Coordinate(1, 2)
        assert c.context is context
        assert c.transformer is context.transformer

    def test_contexts_have_isolated_caches(self, context, denver):
        other = GeodesyContext()
        denver.to_projection("NAD83")
        Coordinate(39.7392, -104.9903, 1609.3, context=other).to_projection("NAD27")
        assert len(context.transform_cache) == 1
        assert len(other.transform_cache) == 1
        assert context.transform_cache is not other.transform_cache

    def test_derived_coordinates_keep_context(self):
        other = GeodesyContext()
        c = Coordinate(39.0, -105.0, context=other)
        assert c.to_projection("NAD83").context is other
        assert c.clone().context is other

    def test_input_policy(self):
        ctx = GeodesyContext(GeodesyConfig(input_policy="strict"))
        assert ctx.input_policy is InputPolicy.STRICT

    def test_unknown_transformer_type_rejected(self):
        with pytest.raises(UnknownTransformerError):
            GeodesyContext(GeodesyConfig(transformer_type="bogus"))


class TestInitializeCore:
    def test_installs_new_default(self, context):
        assert initialize_core(GeodesyConfig()) is True
        assert get_default_context() is not context

    def test_failure_keeps_previous_default(self, context, caplog):
        with caplog.at_level(logging.ERROR):
            assert initialize_core(GeodesyConfig(transformer_type="bogus")) is False
        assert get_default_context() is context
        assert "Failed to initialize" in caplog.text

    def test_named_geoid_model_requests_load(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert initialize_core(GeodesyConfig(geoid_model="GEOID18")) is True
        assert "GEOID18 not implemented" in caplog.text

    def test_applies_input_policy(self):
        initialize_core(GeodesyConfig(input_policy=InputPolicy.STRICT))
        with pytest.raises(ValueError):
            Coordinate(120, 0)
