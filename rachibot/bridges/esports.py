"""Esports schedules: Bilibili match lists, LPL data scripts and TJStats details.

LPL publishes its data as JavaScript assignments (``var GameList={...};``),
so those bodies are unwrapped before JSON decoding. All dates are
interpreted in the configured zone (Asia/Shanghai by default).
"""

import asyncio
import json
from datetime import datetime, time, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

import httpx
import structlog

from rachibot.bridges.web import WebBridge
from rachibot.core.errors import InvalidCommand, NotFoundError, UpstreamFailure

logger = structlog.get_logger(__name__)

BILIBILI_MATCHES_URL = "https://api.bilibili.com/x/esports/matchs/list"
BILIBILI_GAME_IDS = {"lol": "2", "cs": "7"}

LPL_DATA_URL = "https://lpl.qq.com/web201612/data"
LPL_GAME_LIST_URL = f"{LPL_DATA_URL}/LOL_MATCH2_GAME_LIST_BRIEF.js"
TJSTATS_DETAIL_URL = "https://open.tjstats.com/match-auth-app/open/v1/compound/matchDetail"

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


# ── Date helpers ──────────────────────────────────────────────────────


def _localize(value: str, tz: ZoneInfo) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def parse_local(value: str, tz: ZoneInfo) -> datetime:
    """Parse ``YYYY-MM-DD[ HH:MM:SS]`` as a time in *tz*.

    Raises:
        InvalidCommand: If *value* is not a date.
    """
    try:
        return _localize(value, tz)
    except ValueError:
        raise InvalidCommand(f"invalid date {value}") from None


def record_date(record: dict[str, Any], field: str, tz: ZoneInfo) -> datetime:
    """Date *field* of an upstream record, in *tz*.

    Raises:
        UpstreamFailure: If the field is missing or not a date.
    """
    try:
        return _localize(record[field], tz)
    except (KeyError, TypeError, ValueError) as exc:
        raise UpstreamFailure(f"unexpected esports record: bad {field}") from exc


def record_text(record: dict[str, Any], field: str) -> str:
    value = record.get(field)
    if not isinstance(value, str):
        raise UpstreamFailure(f"unexpected esports record: bad {field}")
    return value


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def end_of_day(moment: datetime) -> datetime:
    return start_of_day(moment) + timedelta(days=1) - timedelta(microseconds=1)


def unwrap_script(text: str, variable: str) -> Any:
    """Decode the JSON assigned in ``var <variable>=...;``."""
    body = text.strip()
    marker = f"var {variable}="
    if not body.startswith(marker):
        raise UpstreamFailure(f"unexpected LPL {variable} script")
    body = body[len(marker):]
    if body.endswith(";"):
        body = body[:-1]
    try:
        return json.loads(body)
    except ValueError as exc:
        raise UpstreamFailure(f"invalid LPL {variable} payload") from exc


# ── Selection (pure) ──────────────────────────────────────────────────


def running_games(games: list[dict[str, Any]], stime: datetime, etime: datetime) -> list[dict[str, Any]]:
    """Tournaments whose date span overlaps ``[stime, etime]`` by day."""
    tz = stime.tzinfo
    running = []
    for game in games:
        s_date = start_of_day(record_date(game, "sDate", tz))
        e_date = end_of_day(record_date(game, "eDate", tz))
        if s_date < end_of_day(stime) and e_date > start_of_day(etime):
            running.append(game)
    return running


def matches_between(matches: list[dict[str, Any]], stime: datetime, etime: datetime) -> list[dict[str, Any]]:
    tz = stime.tzinfo
    return [
        match
        for match in matches
        if start_of_day(stime) < record_date(match, "MatchDate", tz) < end_of_day(etime)
    ]


def last_match(
    matches: list[dict[str, Any]],
    team: str,
    stime: datetime,
    etime: datetime,
    bounded: bool,
) -> Optional[dict[str, Any]]:
    """Latest match whose name contains *team*.

    Without explicit bounds the match only has to be before *etime*;
    with bounds it must fall within the days of ``[stime, etime]``.
    """
    tz = stime.tzinfo
    found = None
    for match in matches:
        if team not in record_text(match, "bMatchName").lower():
            continue
        played = record_date(match, "MatchDate", tz)
        if bounded:
            if not start_of_day(stime) < played < end_of_day(etime):
                continue
        elif not played < etime:
            continue
        found = match
    return found


# ── Formatting ────────────────────────────────────────────────────────


def format_lpl_match(match: dict[str, Any]) -> str:
    home, _, away = match["bMatchName"].partition(" vs ")
    return "\n".join(
        [
            f"{match['GameName']} {match['GameTypeName']} {match['GameProcName']} ({match['GameModeName']})",
            match["MatchDate"],
            f"{home} {match['ScoreA']} - {match['ScoreB']} {away}",
        ]
    )


def format_game(game: dict[str, Any]) -> str:
    return f"{game['GameName']} {game['sDate']} ~ {game['eDate']}"


def _format_grade(detail: dict[str, Any]) -> str:
    return f"{detail['nickname']} {detail['position']} {detail['avg_grade']} ({detail['grade_users']})"


def format_bilibili_match(match: dict[str, Any], tz: ZoneInfo, grades: bool = False) -> str:
    start = datetime.fromtimestamp(match["stime"], tz).strftime(DATETIME_FORMAT)
    end = datetime.fromtimestamp(match["etime"], tz).strftime(DATETIME_FORMAT)
    home, away = match["home"], match["away"]
    lines = [
        f"{match['season']['title']} {match['game_stage']}",
        f"{start} ~ {end}",
        f"{home['name']} {match['home_score']} - {match['away_score']} {away['name']}",
    ]
    if grades:
        for team in (home, away):
            for detail in team.get("player_grade_detail") or []:
                lines.append(f"{team['name']} {_format_grade(detail)}")
    return "\n".join(lines)


# ── Bridge ────────────────────────────────────────────────────────────


class EsportsBridge:
    """Fetches schedules and match data.

    Args:
        web: Web bridge used for the HTTP calls.
        timezone: Zone name used for dates.
    """

    def __init__(self, web: WebBridge, timezone: str = "Asia/Shanghai") -> None:
        self.web = web
        self.tz = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> str:
        return self.now().strftime("%Y-%m-%d")

    # ── Bilibili ──────────────────────────────────────────────────

    async def bilibili_matches(self, game: str, start: str, end: str) -> list[dict[str, Any]]:
        """Match list of *game* (``lol`` or ``cs``) between two dates."""
        params = {
            "mid": "0",
            "gid": BILIBILI_GAME_IDS[game],
            "tid": "0",
            "pn": "1",
            "ps": "10",
            "contest_status": "",
            "stime": start,
            "etime": end,
        }
        payload = await self.web.fetch_json(BILIBILI_MATCHES_URL, params=params)
        try:
            return payload["data"]["list"] or []
        except (KeyError, TypeError) as exc:
            raise UpstreamFailure("unexpected bilibili match list response") from exc

    # ── LPL ───────────────────────────────────────────────────────

    async def lpl_games(self) -> list[dict[str, Any]]:
        """All tournaments known to LPL, flattened across seasons."""
        text = await self.web.fetch_text(LPL_GAME_LIST_URL)
        payload = unwrap_script(text, "GameList")
        try:
            seasons = payload["msg"]["sGameList"]
        except (KeyError, TypeError) as exc:
            raise UpstreamFailure("unexpected LPL game list") from exc
        return [game for games in seasons.values() for game in games]

    async def lpl_matches(self, game_id: str) -> list[dict[str, Any]]:
        """Matches of one tournament; an unpublished list yields nothing."""
        url = f"{LPL_DATA_URL}/LOL_MATCH2_MATCH_HOMEPAGE_BMATCH_LIST_{game_id}.js"
        try:
            response = await self.web.http.get(url)
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"failed to fetch {url}: {exc}") from exc
        if not response.is_success:
            return []
        try:
            return response.json()["msg"]
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamFailure("unexpected LPL match list") from exc

    async def lpl_matches_for(self, games: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Fetch match lists of *games* concurrently and concatenate them."""
        lists = await asyncio.gather(*(self.lpl_matches(game["GameId"]) for game in games))
        return [match for matches in lists for match in matches]

    async def lpl_news(self, match_id: str) -> list[str]:
        """Headlines attached to a match.

        Raises:
            NotFoundError: If the match carries no news.
        """
        text = await self.web.fetch_text(f"{LPL_DATA_URL}/LOL_MATCH_DETAIL_{match_id}.js")
        payload = unwrap_script(text, "dataObj")
        raw = payload.get("sExt4") if isinstance(payload, dict) else None
        if not raw:
            raise NotFoundError("news not found")
        try:
            return [item["title"] for item in json.loads(raw)]
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamFailure("unexpected LPL news payload") from exc

    async def tjstats_detail(self, match_id: str, authorization: str) -> str:
        """Raw TJStats compound detail document for a match."""
        return await self.web.fetch_text(
            TJSTATS_DETAIL_URL,
            params={"matchId": match_id},
            headers={"authorization": authorization},
            check_status=False,
        )
