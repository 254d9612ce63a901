import os

# Cheap hashes and a fixed auth mode before any worldserver module reads settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("AUTH_TYPE", "password")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from typing import Callable, Dict, Optional
from prometheus_client import CollectorRegistry, Gauge
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from worldserver.src.core.database import build_session_factory
from worldserver.src.core.groups import Groups
from worldserver.src.core.security import get_password_hash
from worldserver.src.models import Account, Base, Player
from worldserver.src.services.presence_service import PresenceService

TEST_DATABASE_URL = "sqlite:///:memory:"

TEST_PASSWORD = "correct horse"


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    test_engine = create_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    """A session for arranging and inspecting rows directly."""
    with session_factory() as session_obj:
        yield session_obj


@pytest.fixture
def create_test_account(session_factory) -> Callable[..., Account]:
    """
    Fixture factory to create an account with a known password.
    """

    def _create_account(
        name: str = "alice",
        email: Optional[str] = None,
        password: str = TEST_PASSWORD,
        account_type: int = 1,
    ) -> Account:
        with session_factory() as session_obj:
            account = Account(
                name=name,
                email=email or f"{name}@example.com",
                password_hash=get_password_hash(password),
                type=account_type,
            )
            session_obj.add(account)
            session_obj.commit()
            return account

    return _create_account


@pytest.fixture
def create_test_player(session_factory) -> Callable[..., Player]:
    """
    Fixture factory to create a player row on an account.
    """

    def _create_player(account_id: int, name: str, initial_data: Dict | None = None) -> Player:
        player_data = {"name": name, "account_id": account_id}
        if initial_data:
            player_data.update(initial_data)

        with session_factory() as session_obj:
            player = Player(**player_data)
            session_obj.add(player)
            session_obj.commit()
            return player

    return _create_player


@pytest.fixture
def gauge_registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def online_gauge(gauge_registry) -> Gauge:
    """Gauge on a private registry so tests never share counter state."""
    return Gauge("test_players_online", "Players online", registry=gauge_registry)


@pytest.fixture
def online_count(gauge_registry) -> Callable[[], float]:
    return lambda: gauge_registry.get_sample_value("test_players_online")


@pytest.fixture
def presence(session_factory, online_gauge) -> PresenceService:
    return PresenceService(session_factory, gauge=online_gauge)


@pytest.fixture
def groups() -> Groups:
    return Groups(
        [
            {"id": 1, "name": "player", "flags": []},
            {"id": 6, "name": "god", "flags": ["special_vip"]},
        ]
    )


@pytest.fixture
def seed_player_state(session_factory) -> Callable[[int], None]:
    """
    Fixture factory that fills every child table of a player with a small,
    known data set.
    """
    from worldserver.src.models import (
        AccountVip,
        ForgeHistory,
        Guild,
        GuildMembership,
        GuildRank,
        PlayerBosstiary,
        PlayerCharm,
        PlayerDepotItem,
        PlayerInboxItem,
        PlayerItem,
        PlayerKill,
        PlayerPrey,
        PlayerRewardItem,
        PlayerSpell,
        PlayerStashItem,
        PlayerStorage,
        PlayerTaskHunt,
        PlayerWheelData,
    )

    def _seed(player_id: int, account_id: int, vip_player_id: Optional[int] = None) -> None:
        with session_factory() as session_obj:
            guild = Guild(name=f"Guild of {player_id}")
            session_obj.add(guild)
            session_obj.flush()
            rank = GuildRank(guild_id=guild.id, name="Leader", level=3)
            session_obj.add(rank)
            session_obj.flush()

            session_obj.add_all(
                [
                    GuildMembership(player_id=player_id, guild_id=guild.id, rank_id=rank.id, nick="boss"),
                    PlayerSpell(player_id=player_id, name="exura"),
                    PlayerSpell(player_id=player_id, name="utevo lux"),
                    PlayerKill(player_id=player_id, target=99, time=1700000000, unavenged=True),
                    PlayerStashItem(player_id=player_id, item_id=3031, item_count=250),
                    PlayerCharm(
                        player_id=player_id,
                        charm_points=40,
                        used_points=10,
                        expansion=True,
                        unlocked_runes=[1, 4],
                        assignments={"1": 35},
                        tracker=[35],
                    ),
                    # backpack in slot 3 holding a bag holding a rune
                    PlayerItem(player_id=player_id, pid=3, sid=101, item_type=2854, count=1, attributes={"container": True}),
                    PlayerItem(player_id=player_id, pid=11, sid=102, item_type=23396, count=1, attributes={"container": True}),
                    PlayerItem(player_id=player_id, pid=101, sid=103, item_type=3031, count=100, attributes={}),
                    PlayerItem(player_id=player_id, pid=101, sid=104, item_type=2853, count=1, attributes={"container": True}),
                    PlayerItem(player_id=player_id, pid=104, sid=105, item_type=3161, count=5, attributes={"charges": 5}),
                    PlayerDepotItem(player_id=player_id, pid=1, sid=101, item_type=3502, count=1, attributes={"container": True}),
                    PlayerDepotItem(player_id=player_id, pid=101, sid=102, item_type=3357, count=1, attributes={}),
                    PlayerRewardItem(player_id=player_id, pid=1, sid=101, item_type=19202, count=1, attributes={"container": True}),
                    PlayerInboxItem(player_id=player_id, pid=0, sid=101, item_type=14404, count=1, attributes={"container": True}),
                    PlayerInboxItem(player_id=player_id, pid=101, sid=102, item_type=3043, count=10, attributes={}),
                    PlayerStorage(player_id=player_id, key=10001, value=1),
                    PlayerStorage(player_id=player_id, key=10002, value=7),
                    PlayerPrey(player_id=player_id, slot=0, state=2, raceid=35, bonus_type=1, bonus_percentage=20, bonus_time=3600, monster_list=[35, 36]),
                    PlayerTaskHunt(player_id=player_id, slot=0, state=1, raceid=35, kills=25, monster_list=[35]),
                    ForgeHistory(player_id=player_id, action_type=1, description="Fused a sword", done_at=1700000100, is_success=True),
                    PlayerBosstiary(player_id=player_id, boss_slot_one=1, boss_slot_two=2, remove_times=1, boss_points=150, tracker=[1]),
                    PlayerWheelData(player_id=player_id, slot_points={"1": 3, "5": 2}),
                ]
            )
            if vip_player_id is not None:
                session_obj.add(
                    AccountVip(
                        account_id=account_id,
                        player_id=vip_player_id,
                        description="friend",
                        icon=2,
                        notify=True,
                    )
                )
            session_obj.commit()

    return _seed
