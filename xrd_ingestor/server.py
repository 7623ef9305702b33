"""MCP server entry point for the XRD catalog ingestor."""

import logging
import os

from fastmcp import FastMCP

from xrd_ingestor.tools import register_xrd_catalog_tools

logger = logging.getLogger("xrd-ingestor")


def create_server(non_destructive: bool = False) -> FastMCP:
    server = FastMCP(name="xrd-catalog-ingestor")
    register_xrd_catalog_tools(server, non_destructive)
    return server


def main():
    level = os.environ.get("XRD_INGESTOR_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting xrd-catalog-ingestor MCP server")
    create_server().run()


if __name__ == "__main__":
    main()
