from collabmatch.app_config import get_app_environ_config
from collabmatch.schemas.init import init_beanie_odm
from collabmatch.shared.storage.mongo import get_mongo_client


async def init_schema():
    mongo_client = get_mongo_client(get_app_environ_config().COLLAB_MONGO_LABEL)
    db = mongo_client.get_default_database("collabmatch")
    await init_beanie_odm(db)


if __name__ == "__main__":
    import asyncio

    asyncio.run(init_schema())
