"""
Test the environment driven config, and the logger built on it
"""

import os
import unittest
from unittest import mock

import structlog

from multidatasetlib import Core
from multidatasetlib.Core import config
from multidatasetlib.Core import logging_config


class test_DataConfig(unittest.TestCase):
    def tearDown(self):
        Core.set_config(None)

    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            loaded = Core.DataConfig.from_env()
        self.assertTrue(loaded.mask_on_padding)
        self.assertEqual(loaded.log_level, "WARNING")

    def test_from_env(self):
        environ = {config.MASK_ON_PADDING_ENV: "Off", config.LOG_LEVEL_ENV: "debug"}
        with mock.patch.dict(os.environ, environ, clear=True):
            loaded = Core.DataConfig.from_env()
        self.assertFalse(loaded.mask_on_padding)
        self.assertEqual(loaded.log_level, "DEBUG")

    def test_bool_spellings(self):
        for raw, expected in (("1", True), ("yes", True), ("TRUE", True), ("0", False), ("no", False)):
            with mock.patch.dict(os.environ, {config.MASK_ON_PADDING_ENV: raw}, clear=True):
                self.assertEqual(Core.DataConfig.from_env().mask_on_padding, expected)

    def test_invalid_values(self):
        with mock.patch.dict(os.environ, {config.MASK_ON_PADDING_ENV: "maybe"}, clear=True):
            with self.assertRaises(Core.ConfigurationError):
                Core.DataConfig.from_env()
        with mock.patch.dict(os.environ, {config.LOG_LEVEL_ENV: "LOUD"}, clear=True):
            with self.assertRaises(Core.ConfigurationError):
                Core.DataConfig.from_env()
        with self.assertRaises(Core.ConfigurationError):
            Core.DataConfig(log_level="verbose")

    def test_frozen(self):
        loaded = Core.DataConfig()
        with self.assertRaises(Exception):
            loaded.mask_on_padding = False

    def test_active_config(self):
        Core.set_config(Core.DataConfig(mask_on_padding=False))
        self.assertFalse(Core.get_config().mask_on_padding)

        Core.set_config(None)
        with mock.patch.dict(os.environ, {config.MASK_ON_PADDING_ENV: "false"}, clear=True):
            self.assertFalse(Core.get_config().mask_on_padding)
        # Cached after the first read
        with mock.patch.dict(os.environ, {config.MASK_ON_PADDING_ENV: "true"}, clear=True):
            self.assertFalse(Core.get_config().mask_on_padding)


class test_logger(unittest.TestCase):
    def tearDown(self):
        Core.set_config(None)

    def test_get_logger(self):
        logger = Core.get_logger("test")
        logger.debug("test_event", value=1)
        logger.warning("test_event", value=2)

    def test_get_logger_does_not_read_config(self):
        """A bad level only surfaces once something is logged"""
        Core.set_config(None)
        with mock.patch.dict(os.environ, {config.LOG_LEVEL_ENV: "LOUD"}, clear=True):
            logger = Core.get_logger("test")
            self.assertIsNotNone(logger)

    def test_level_filter(self):
        Core.set_config(Core.DataConfig(log_level="ERROR"))
        with self.assertRaises(structlog.DropEvent):
            logging_config._filter_by_level(None, "warning", {"event": "test"})
        kept = logging_config._filter_by_level(None, "error", {"event": "test"})
        self.assertEqual(kept, {"event": "test"})

        Core.set_config(Core.DataConfig(log_level="DEBUG"))
        self.assertEqual(logging_config._filter_by_level(None, "debug", {}), {})
