"""Core services shared by the parser and the builders."""
