#!/usr/bin/env python3

from unittest import TestCase

import pytest

from schema_ir import ConfigurationError, ConversionConfig, FormatterConfig, OpenApiVersion, UnionStyle


class TestConversionConfig(TestCase):
    """Test configuration defaults and dictionary conversion"""

    def test_defaults(self):
        config = ConversionConfig()
        self.assertEqual(config.union_style, UnionStyle.ONE_OF)
        self.assertEqual(config.openapi_version, OpenApiVersion.V3_0)
        self.assertFalse(config.coerce_symbols_to_strings)
        self.assertIsNone(config.transform_date)
        self.assertEqual(config.protobuf_package, "api")
        self.assertEqual(config.default_service_name, "DefaultService")
        self.assertFalse(config.formatter.enabled)

    def test_string_options_are_coerced(self):
        config = ConversionConfig(union_style="anyOf", openapi_version="3.1")
        self.assertEqual(config.union_style, UnionStyle.ANY_OF)
        self.assertEqual(config.openapi_version, OpenApiVersion.V3_1)

    def test_invalid_option(self):
        with self.assertRaises(ConfigurationError) as ctx:
            ConversionConfig(union_style="allOf")
        self.assertIn("'oneOf', 'anyOf'", str(ctx.exception))

    def test_empty_package(self):
        with self.assertRaises(ConfigurationError):
            ConversionConfig(protobuf_package="")

    def test_from_dict(self):
        config = ConversionConfig.from_dict(
            {
                "union_style": "anyOf",
                "protobuf_package": "shop.v1",
                "formatter": {"enabled": True, "line_length": 88},
            }
        )
        self.assertEqual(config.union_style, UnionStyle.ANY_OF)
        self.assertEqual(config.protobuf_package, "shop.v1")
        self.assertEqual(config.formatter, FormatterConfig(enabled=True, line_length=88))

    def test_from_dict_unknown_key(self):
        with self.assertRaises(ConfigurationError):
            ConversionConfig.from_dict({"unknown": 1})

    def test_transform_date_is_not_loadable(self):
        with self.assertRaises(ConfigurationError):
            ConversionConfig.from_dict({"transform_date": "int"})

    def test_round_trip(self):
        config = ConversionConfig(openapi_version="3.1", coerce_symbols_to_strings=True)
        self.assertEqual(ConversionConfig.from_dict(config.to_dict()), config)


if __name__ == "__main__":
    pytest.main([__file__])
