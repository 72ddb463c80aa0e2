import asyncio
import logging
from logging.handlers import RotatingFileHandler
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from cardbot.core.config import BOT_TOKEN, settings
from cardbot.handlers import common, profile_wizard, profiles
from cardbot.middlewares.fsm_timeout import FSMTimeoutMiddleware
from cardbot.middlewares.logging import LoggingMiddleware, CustomFormatter

def setup_logging():
    log_level = settings.LOG_LEVEL.upper()

    logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = RotatingFileHandler(settings.LOG_FILE, maxBytes=5*1024*1024, backupCount=5)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(CustomFormatter('%(asctime)s - %(name)s - %(levelname)s - %(user_id)s - %(message)s'))

    logging.getLogger().addHandler(file_handler)

def create_dispatcher() -> Dispatcher:
    # MemoryStorage хранит объекты как есть, в том числе файлы мастера
    dp = Dispatcher(storage=MemoryStorage())

    dp.message.outer_middleware(LoggingMiddleware())
    dp.callback_query.outer_middleware(LoggingMiddleware())
    dp.message.outer_middleware(FSMTimeoutMiddleware())
    dp.callback_query.outer_middleware(FSMTimeoutMiddleware())

    dp.include_router(common.router)
    dp.include_router(profiles.router)
    dp.include_router(profile_wizard.router)
    return dp

async def main():
    setup_logging()
    if not BOT_TOKEN:
        logging.critical("BOT_TOKEN is not set")
        return

    bot = Bot(token=BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = create_dispatcher()

    try:
        await dp.start_polling(bot)
    except Exception as e:
        logging.critical(f"Critical error starting bot: {e}", exc_info=True)
    finally:
        await bot.session.close()

def run():
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Bot stopped gracefully")

if __name__ == "__main__":
    run()
