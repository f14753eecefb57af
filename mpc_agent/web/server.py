"""
Web Server Entry Point
Run this file (or `mpc-agent-server`) to serve one agent over HTTP
"""

import argparse
import logging

import uvicorn

from ..config import load_agent_config
from .api import create_app
from .service import AgentService


def main(argv=None):
    """Start the agent server"""
    parser = argparse.ArgumentParser(description="Serve an MPC agent over HTTP")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8002)
    parser.add_argument("--config", default=None, help="Agent config JSON (defaults to $MPC_AGENT_CONFIG)")
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper()))
    config = load_agent_config(args.config)

    app = create_app(AgentService(config))
    uvicorn.run(app, host=args.host, port=args.port, reload=False, log_level=args.log_level)


if __name__ == "__main__":
    main()
