"""Configuration file model and parser."""

from netloy.config.models import CONFIG_FILE_EXTENSION, Configuration, IconDescriptor
from netloy.config.parser import ConfigurationParser, find_config_file, split_list

__all__ = [
    "CONFIG_FILE_EXTENSION",
    "Configuration",
    "ConfigurationParser",
    "IconDescriptor",
    "find_config_file",
    "split_list",
]
