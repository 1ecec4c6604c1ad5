"""Helpers that render configuration text into packaging metadata."""

from netloy.helpers.appstream import changelog_xml, changelog_xml_from_file, description_xml

__all__ = ["changelog_xml", "changelog_xml_from_file", "description_xml"]
