#!/usr/bin/env python3
"""
基于官方 MCP SDK 的浏览器自动化服务器 - stdio 传输
"""
import asyncio
import logging

from browser_mcp import run_stdio

# 日志输出到 stderr，stdout 留给 MCP 协议
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def main():
    """启动 stdio 服务器"""
    try:
        asyncio.run(run_stdio())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
