from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession


def create_engine(config) -> AsyncEngine:
    options = {}
    if not config.DB_URI.startswith("sqlite"):
        options["pool_size"] = config.DB_POOL_SIZE
    return create_async_engine(config.DB_URI, echo=False, future=True, **options)


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


def get_context(request: Request):
    return request.app.state.context


async def get_session(request: Request) -> AsyncSession:
    async with get_context(request).session_factory() as session:
        yield session


def get_payment_provider(request: Request):
    return get_context(request).payment_provider


def get_config(request: Request):
    return get_context(request).config
