from xrd_ingestor.tools.xrd_catalog import register_xrd_catalog_tools

__all__ = ["register_xrd_catalog_tools"]
