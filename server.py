# server.py
"""
Main entry point for the Singularity Storage server.
Loads persisted storage, applies wipe handling for the current world save,
rebuilds terminals, serves console connections and shuts down gracefully.
"""
import asyncio
import logging
import config
from typing import Optional
from singularity.database import db_manager
from singularity.world import World
from singularity.handlers.connection import ConnectionHandler

# --- Logging Setup ---
log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
log_handlers = [
    logging.FileHandler("storage.log"),
    logging.StreamHandler()
]
logging.basicConfig(
    level=logging.INFO,
    format=log_format,
    handlers=log_handlers
)
log = logging.getLogger(__name__)

# --- Global State ---
world: Optional[World] = None
ACTIVE_TASKS = set()


async def handle_connection(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
    """Coroutine called for each new client connection."""
    task = asyncio.current_task()
    ACTIVE_TASKS.add(task)
    task.add_done_callback(ACTIVE_TASKS.discard)

    addr = writer.get_extra_info('peername', 'Unknown Address')
    log.info("Connection received from %s", addr)

    if not world:
        log.error("Server not fully initialized. Refusing connection from %s.", addr)
        writer.close()
        await writer.wait_closed()
        return

    handler = ConnectionHandler(reader, writer, world)
    await handler.handle()


async def _autosave_loop(world: World, interval_seconds: int):
    """Periodically checkpoints open sessions and flushes pending writes."""
    log.info("Autosave task started. Interval: %d seconds.", interval_seconds)
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            log.info("Autosave: Starting periodic storage save...")
            await world.save_state()
        except asyncio.CancelledError:
            log.info("Autosave task cancelled.")
            break
        except Exception:
            log.exception("Autosave: Unexpected error in autosave loop.")
            await asyncio.sleep(60)


async def main():
    """Main server entry point."""
    global world

    log.info("Starting Singularity Storage server...")

    # 1. Connect to the database and load storage state
    await db_manager.connect()
    await db_manager.init_db()
    world = World(db_manager)
    if not await world.build():
        log.critical("!!! Failed to load storage state. Server cannot start.")
        await db_manager.close()
        return

    # 2. Count a wipe if the world save changed, then rebuild terminals
    if config.WORLD_SAVE_ID:
        world.on_world_initialized(config.WORLD_SAVE_ID)
    else:
        log.warning("SINGULARITY_WORLD_SAVE_ID is not set. Wipe detection is disabled.")
        if config.AUTO_SPAWN_TERMINALS:
            world.placements.restore_all()
    world.subscribe_to_ticker()
    log.info("Storage loaded successfully.")

    # 3. Start the network server to listen for connections
    server = await asyncio.start_server(handle_connection, config.HOST, config.PORT)
    addr = server.sockets[0].getsockname()
    log.info("Server listening on %s:%s", addr[0], addr[1])

    # 4. Start background tasks after the server is ready
    world.ticker.start()
    autosave_task = None
    if config.AUTOSAVE_INTERVAL_SECONDS > 0:
        autosave_task = asyncio.create_task(_autosave_loop(world, config.AUTOSAVE_INTERVAL_SECONDS))

    try:
        await server.serve_forever()
    except asyncio.CancelledError:
        log.info("Main server task cancelled.")
    finally:
        log.info("Shutting down server...")
        if autosave_task:
            autosave_task.cancel()
        server.close()
        await server.wait_closed()

        if ACTIVE_TASKS:
            log.info("Waiting for %d client tasks to complete cleanup...", len(ACTIVE_TASKS))
            await asyncio.gather(*ACTIVE_TASKS, return_exceptions=True)
            log.info("All client tasks are done.")

        # Closes every session and removes terminals before the pool goes away
        await world.shutdown()
        await db_manager.close()
        log.info("Server shutdown complete.")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log.info("Server stopped manually.")
