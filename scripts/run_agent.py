#!/usr/bin/env python3
"""
Main runner script for the sparkloop agent.

Runs the stimulus cycle and the outcome poll as two concurrent loops
against the live X API and the Claude API.
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(__file__).rsplit("/", 2)[0])

from sparkloop.config.settings import get_settings
from sparkloop.engine import AgentEngine
from sparkloop.llm.client import ClaudeClient
from sparkloop.social.x_client import XClient
from sparkloop.storage.backends import InMemoryBackend, JsonFileBackend
from sparkloop.storage.store import AgentStore

logger = logging.getLogger(__name__)


class AgentRunner:
    """
    Owns the live clients and the two background loops.

    The cycle loop processes stimuli; the outcome loop drains due
    evaluations. They share the engine but never the same record.
    """

    def __init__(self):
        self.settings = get_settings()

        logging.basicConfig(
            level=getattr(logging, self.settings.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )

        self._init_clients()
        self._init_storage()
        self._init_engine()

        # State
        self.running = False
        self._stop_event = asyncio.Event()

    def _init_clients(self):
        """Initialize platform and completion clients."""
        self.x_client = XClient(self.settings.platform)
        self.llm = ClaudeClient(
            api_key=self.settings.llm.api_key,
            model=self.settings.llm.model,
            max_tokens=self.settings.llm.max_tokens,
        )

    def _init_storage(self):
        """Initialize storage."""
        if self.settings.storage.backend == "memory":
            logger.warning("Using in-memory storage, nothing will survive a restart")
            backend = InMemoryBackend()
        else:
            backend = JsonFileBackend(Path(self.settings.storage.data_dir))
        self.store = AgentStore(backend)

    def _init_engine(self):
        """Wire the engine."""
        self.engine = AgentEngine.build(
            platform=self.x_client,
            llm=self.llm,
            store=self.store,
            settings=self.settings.agent,
            call_timeout=self.settings.llm.request_timeout_seconds,
        )

    async def start(self):
        """Start the agent."""
        logger.info("Starting sparkloop agent")
        self.running = True
        await self.engine.prepare()

        try:
            await asyncio.gather(
                self._cycle_loop(),
                self._outcome_loop(),
            )
        except asyncio.CancelledError:
            logger.info("Agent shutdown requested")
        finally:
            await self.close()

    async def _sleep(self, seconds: float) -> None:
        """Sleep unless a stop is requested first."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _cycle_loop(self):
        """Process a batch of stimuli every cycle interval."""
        while self.running:
            try:
                report = await self.engine.run_cycle()
                logger.info(f"Cycle report: {report.to_dict()}")
            except Exception as e:
                logger.exception(f"Cycle failed: {e}")
            await self._sleep(self.settings.agent.cycle_interval_seconds)

    async def _outcome_loop(self):
        """Periodically evaluate due outcomes."""
        while self.running:
            try:
                result = await self.engine.poll_outcomes()
                if result.checked:
                    logger.info(f"Outcome drain: {result.to_dict()}")
            except Exception as e:
                logger.exception(f"Outcome drain failed: {e}")
            await self._sleep(self.settings.agent.outcome_poll_interval_seconds)

    def stop(self):
        """Ask both loops to finish after their current step."""
        logger.info("Stopping agent")
        self.running = False
        self.engine.request_stop()
        self._stop_event.set()

    async def close(self):
        await self.x_client.close()
        await self.llm.close()


async def main():
    """Main entry point."""
    runner = AgentRunner()

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        runner.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await runner.start()


if __name__ == "__main__":
    asyncio.run(main())
