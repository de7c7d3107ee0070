"""
Movement command extraction for geowalk.

Turns free text into a MovementCommand in two steps:

1. A cheap vocabulary gate rejects text that mentions no movement at all.
2. An ordered cascade of pure strategies, first match wins. The order is a
   trust ordering, literal data before inference:
   coordinates -> map link -> named location -> direction + distance ->
   relative movement.

English and Traditional Chinese are both supported.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import unquote_plus

from geowalk.engine.errors import ExtractionError, NotAMovementCommandError
from geowalk.engine.validator import CommandValidator
from geowalk.geo.geocoding import Geocoder, GeocodingError
from geowalk.models.command import (
    CoordinateMatch,
    Direction,
    DirectionMatch,
    Extraction,
    MovementCommand,
    MovementKind,
    PlaceNameMatch,
    SpeedProfile,
)
from geowalk.models.geo import Coordinate

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Extraction | None]

# =============================================================================
# Confidence per strategy
# =============================================================================

COORDINATE_CONFIDENCE = 0.9
MAP_LINK_CONFIDENCE = 0.9
MAP_LINK_PLACE_CONFIDENCE = 0.8  # needs a second resolution step
NAMED_LOCATION_CONFIDENCE = 0.9
DIRECTION_WITH_DISTANCE_CONFIDENCE = 0.8
DIRECTION_DEFAULT_DISTANCE_CONFIDENCE = 0.7

DEFAULT_DISTANCE_METERS = 100.0
METERS_PER_STEP = 0.75

# =============================================================================
# Gate vocabulary
# =============================================================================

_GATE_WORDS_EN = (
    # Verbs
    "move", "go", "walk", "run", "navigate", "travel", "head", "take me",
    "bring me", "stroll", "jog",
    # Directions
    "north", "south", "east", "west", "northeast", "northwest", "southeast",
    "southwest", "forward", "forwards", "backward", "backwards", "left", "right",
    # Distances
    "meter", "meters", "metre", "metres", "km", "kilometer", "kilometers",
    "step", "steps", "distance",
    # Location data
    "coordinates", "coordinate", "latitude", "longitude", "lat", "lng",
)

_GATE_WORDS_ZH = (
    # 移動動詞
    "移動", "去", "前往", "到", "走", "跑", "帶我去", "導航",
    # 方向
    "向前", "向後", "向左", "向右", "往北", "往南", "往東", "往西",
    "北邊", "南邊", "東邊", "西邊", "東北", "西北", "東南", "西南",
    # 距離
    "公尺", "米", "公里", "步", "距離",
    # 位置
    "位置", "地點", "座標", "經緯度", "緯度", "經度",
)

_GATE_EN_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(w) for w in sorted(_GATE_WORDS_EN, key=len, reverse=True)) + r")\b",
    re.I,
)

# =============================================================================
# Coordinates and map links
# =============================================================================

_URL_PATTERN = re.compile(r"https?://\S+", re.I)

_COORDINATE_PATTERNS = [
    # 緯度: 25.0330 經度: 121.5654
    re.compile(
        r"緯度\s*[:：=]?\s*(-?\d{1,2}(?:\.\d+)?)\s*[,，、]?\s*經度\s*[:：=]?\s*(-?\d{1,3}(?:\.\d+)?)"
    ),
    # lat: 25.0330 lng: 121.5654
    re.compile(
        r"\blat(?:itude)?\s*[:：=]\s*(-?\d{1,2}(?:\.\d+)?)\s*[,;，]?\s*"
        r"(?:lng|lon|long|longitude)\s*[:：=]\s*(-?\d{1,3}(?:\.\d+)?)",
        re.I,
    ),
    # 25.0330, 121.5654
    re.compile(r"(?<![\d.])(-?\d{1,2}\.\d+)\s*[,，]\s*(-?\d{1,3}\.\d+)(?![\d.])"),
]

_MAP_LINK_PATTERN = re.compile(
    r"https?://(?:www\.)?(?:maps\.)?"
    r"(?:google\.[a-z.]+/maps|maps\.google\.[a-z.]+|goo\.gl/maps|maps\.app\.goo\.gl)\S*",
    re.I,
)

_LINK_COORDINATE_PATTERNS = [
    re.compile(r"@(-?\d+(?:\.\d+)?),(-?\d+(?:\.\d+)?)(?:,[\d.]+z)?"),
    re.compile(r"[?&](?:ll|center|q)=(-?\d+(?:\.\d+)?)(?:,|%2C)(-?\d+(?:\.\d+)?)", re.I),
]

_LINK_PLACE_PATTERN = re.compile(r"/maps/(?:place|search)/([^/?#@]+)", re.I)

# =============================================================================
# Gazetteer
# =============================================================================

NAMED_PLACES = (
    # 主要城市
    "台北市", "新北市", "桃園市", "台中市", "台南市", "高雄市", "基隆市", "新竹市",
    "嘉義市", "彰化縣",
    "台北", "新北", "桃園", "台中", "台南", "高雄", "基隆", "新竹", "嘉義", "彰化",
    "南投", "雲林", "屏東", "宜蘭", "花蓮", "台東", "澎湖", "金門", "馬祖",
    # 著名景點
    "台北101", "中正紀念堂", "故宮", "總統府", "自由廣場", "龍山寺", "西門町", "九份",
    "淡水", "北投", "陽明山", "日月潭", "阿里山", "太魯閣", "墾丁", "清境", "合歡山",
    "玉山", "溪頭", "杉林溪", "集集", "鹿港", "安平", "赤崁樓", "愛河", "旗津",
    "佛光山", "義大世界", "六合夜市", "逢甲夜市", "士林夜市", "饒河夜市", "一中商圈",
    "東海大學", "中興大學", "成功大學", "中山大學", "高雄大學",
    # English names
    "taipei", "new taipei", "taoyuan", "taichung", "tainan", "kaohsiung", "keelung",
    "hsinchu", "chiayi", "changhua", "nantou", "yunlin", "pingtung", "yilan",
    "hualien", "taitung", "penghu", "kinmen", "matsu",
    "taipei 101", "sun moon lake", "alishan", "taroko", "kenting", "yangmingshan",
    "jiufen", "tamsui", "beitou", "ximending", "shilin night market",
    "raohe night market", "fengjia night market", "national palace museum",
    "chiang kai-shek memorial hall", "longshan temple",
)

CATEGORY_PLACES = (
    "夜市", "火車站", "捷運站", "高鐵站", "車站", "機場", "港口", "公園", "博物館",
    "美術館", "動物園", "老街", "海邊", "沙灘", "溫泉", "國家公園", "百貨公司",
    "night market", "train station", "mrt station", "bus station", "airport",
    "harbor", "park", "museum", "zoo", "old street", "beach", "hot spring",
    "national park", "department store",
)


def _compile_gazetteer(entries: tuple[str, ...]) -> list[tuple[str, re.Pattern | None]]:
    """Longest entries first; ASCII entries match on word boundaries."""
    compiled = []
    for entry in sorted(entries, key=len, reverse=True):
        if entry.isascii():
            compiled.append((entry, re.compile(r"\b" + re.escape(entry) + r"\b", re.I)))
        else:
            compiled.append((entry, None))
    return compiled


_NAMED_GAZETTEER = _compile_gazetteer(NAMED_PLACES)
_CATEGORY_GAZETTEER = _compile_gazetteer(CATEGORY_PLACES)

_EN_PLACE_PATTERNS = [
    re.compile(
        r"\b(?:go|move|walk|run|head|travel|navigate|fly|teleport|get)\s+"
        r"(?:over\s+|back\s+|straight\s+)?(?:to|towards?|into)\s+(?P<place>.+)",
        re.I,
    ),
    re.compile(r"\b(?:take|bring|lead)\s+me\s+(?:to|towards?)\s+(?P<place>.+)", re.I),
]

# A bare 到 is not a verb of motion on its own (收到, 看到).
_ZH_PLACE_PATTERN = re.compile(r"(?:移動.*?到|走到|跑到|飛到|帶我去|導航到|前往|去)\s*(?P<place>.+)")

_PLACE_PUNCTUATION = re.compile(r"[,.!?;:，。！？；：、\n]")

# Sub-clauses that follow a destination: "go to X to eat noodles".
_EN_PLACE_TERMINATORS = re.compile(
    r"\s+(?:(?:to|and|then|for|with|by)\b"
    r"|(?:eat|drink|have|buy|shop|play|see|visit|try|grab|meet|watch)\b"
    r"|(?:now|quickly|slowly|fast|please|asap)\b)",
    re.I,
)
_ZH_PLACE_TERMINATORS = re.compile(r"[\s吃喝玩買看逛找拿吧啦喔嗎呢]")
_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.I)

# =============================================================================
# Directions, distances, speed
# =============================================================================

_EN_DIRECTIONS: dict[str, Direction] = {
    "northeast": Direction.NORTHEAST,
    "northwest": Direction.NORTHWEST,
    "southeast": Direction.SOUTHEAST,
    "southwest": Direction.SOUTHWEST,
    "north": Direction.NORTH,
    "south": Direction.SOUTH,
    "east": Direction.EAST,
    "west": Direction.WEST,
    "forward": Direction.FORWARD,
    "ahead": Direction.FORWARD,
    "backward": Direction.BACKWARD,
    "back": Direction.BACKWARD,
    "left": Direction.LEFT,
    "right": Direction.RIGHT,
}

_ZH_DIRECTIONS: dict[str, Direction] = {
    "東北": Direction.NORTHEAST,
    "西北": Direction.NORTHWEST,
    "東南": Direction.SOUTHEAST,
    "西南": Direction.SOUTHWEST,
    "北": Direction.NORTH,
    "南": Direction.SOUTH,
    "東": Direction.EAST,
    "西": Direction.WEST,
    "前": Direction.FORWARD,
    "後": Direction.BACKWARD,
    "左": Direction.LEFT,
    "右": Direction.RIGHT,
}

_DIRECTION_PATTERN = re.compile(
    # English: north-east, north east, northeast, forwards, backwards
    r"\b(?P<en>(?:north|south)[\s-]?(?:east|west)|north|south|east|west"
    r"|forwards?|ahead|backwards?|back|left|right)\b"
    # Chinese: 往北, 向前, 朝東南 or 北邊, 東南方
    r"|(?:往|向|朝)\s*(?P<zh_prefixed>東北|西北|東南|西南|北|南|東|西|前|後|左|右)"
    r"|(?P<zh_suffixed>東北|西北|東南|西南|北|南|東|西|前|後|左|右)(?:邊|方)",
    re.I,
)

_DISTANCE_UNITS = [
    (re.compile(r"(\d+(?:\.\d+)?)\s*(?:km|kilomet(?:er|re)s?|公里)", re.I), 1000.0),
    (re.compile(r"(\d+(?:\.\d+)?)\s*(?:m\b|met(?:er|re)s?|公尺|米)", re.I), 1.0),
    (re.compile(r"(\d+(?:\.\d+)?)\s*(?:steps?|步)", re.I), METERS_PER_STEP),
]

# A bare relative word ("that's right") is only a move next to a verb or a distance.
_RELATIVE_DIRECTIONS = frozenset(
    {Direction.FORWARD, Direction.BACKWARD, Direction.LEFT, Direction.RIGHT}
)
_MOVE_VERB_PATTERN = re.compile(
    r"\b(?:move|go|walk|run|head|step|jog|stroll|travel|navigate)\b", re.I
)

_FAST_PATTERN = re.compile(
    r"\b(?:run|running|jog|jogging|quickly|fast|hurry|rush|sprint)\b|跑|快", re.I
)
_SLOW_PATTERN = re.compile(r"\b(?:slowly|slow|stroll|strolling|leisurely)\b|慢|散步", re.I)


# =============================================================================
# Gate
# =============================================================================


def is_movement_command(text: str) -> bool:
    """
    Cheap rejection filter: does the text mention movement at all?

    Literal location data (a coordinate pair or a map link) counts as
    movement vocabulary.
    """
    if _GATE_EN_PATTERN.search(text):
        return True
    if any(word in text for word in _GATE_WORDS_ZH):
        return True
    if _MAP_LINK_PATTERN.search(text):
        return True
    return _find_coordinate_pair(_URL_PATTERN.sub(" ", text)) is not None


# =============================================================================
# Strategies
# =============================================================================


def _valid_coordinate(lat: float, lng: float) -> Coordinate | None:
    if -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0:
        return Coordinate(latitude=lat, longitude=lng)
    return None


def _find_coordinate_pair(text: str) -> Coordinate | None:
    for pattern in _COORDINATE_PATTERNS:
        for match in pattern.finditer(text):
            coordinate = _valid_coordinate(float(match.group(1)), float(match.group(2)))
            if coordinate is not None:
                return coordinate
    return None


def extract_coordinates(text: str) -> Extraction | None:
    """Strategy 1: a literal coordinate pair outside any URL."""
    coordinate = _find_coordinate_pair(_URL_PATTERN.sub(" ", text))
    if coordinate is None:
        return None
    return CoordinateMatch(
        coordinate=coordinate,
        confidence=COORDINATE_CONFIDENCE,
        strategy="coordinates",
    )


def extract_map_link(text: str) -> Extraction | None:
    """Strategy 2: a mapping-service link carrying a coordinate or a place."""
    link_match = _MAP_LINK_PATTERN.search(text)
    if link_match is None:
        return None
    url = link_match.group(0)

    for pattern in _LINK_COORDINATE_PATTERNS:
        match = pattern.search(url)
        if match:
            coordinate = _valid_coordinate(float(match.group(1)), float(match.group(2)))
            if coordinate is not None:
                return CoordinateMatch(
                    coordinate=coordinate,
                    confidence=MAP_LINK_CONFIDENCE,
                    strategy="map_link",
                    source_url=url,
                )

    place_match = _LINK_PLACE_PATTERN.search(url)
    if place_match:
        place_name = unquote_plus(place_match.group(1)).strip()
        if place_name:
            return PlaceNameMatch(
                place_name=place_name,
                confidence=MAP_LINK_PLACE_CONFIDENCE,
                strategy="map_link_place",
                source_url=url,
            )
    return None


def _find_gazetteer_entry(
    text: str, gazetteer: list[tuple[str, re.Pattern | None]]
) -> str | None:
    for entry, pattern in gazetteer:
        if pattern is None:
            if entry in text:
                return entry
        else:
            match = pattern.search(text)
            if match:
                return match.group(0)
    return None


def _is_direction_phrase(phrase: str) -> bool:
    match = _DIRECTION_PATTERN.fullmatch(phrase)
    return match is not None or phrase in _ZH_DIRECTIONS


def _trim_place_phrase(phrase: str, chinese: bool) -> str | None:
    """Cut a captured noun phrase at punctuation or a following sub-clause."""
    phrase = _PLACE_PUNCTUATION.split(phrase, maxsplit=1)[0]
    terminators = _ZH_PLACE_TERMINATORS if chinese else _EN_PLACE_TERMINATORS
    phrase = terminators.split(phrase, maxsplit=1)[0]
    phrase = _LEADING_ARTICLE.sub("", phrase.strip()).strip()

    if not phrase or _is_direction_phrase(phrase.lower()):
        return None
    if chinese and len(phrase) < 2:
        return None
    if _DISTANCE_UNITS[0][0].search(phrase) or _DISTANCE_UNITS[1][0].search(phrase):
        return None
    return phrase


def _extract_place_phrase(text: str) -> str | None:
    for pattern in _EN_PLACE_PATTERNS:
        match = pattern.search(text)
        if match:
            place = _trim_place_phrase(match.group("place"), chinese=False)
            if place:
                return place

    match = _ZH_PLACE_PATTERN.search(text)
    if match:
        return _trim_place_phrase(match.group("place"), chinese=True)
    return None


def extract_named_location(text: str) -> Extraction | None:
    """
    Strategy 3: a named place.

    Known city and landmark names win over free-form capture, so
    "go to Tainan to eat noodles" yields "Tainan". Generic category nouns
    ("night market") are only used when nothing more specific was found.
    """
    place = (
        _find_gazetteer_entry(text, _NAMED_GAZETTEER)
        or _extract_place_phrase(text)
        or _find_gazetteer_entry(text, _CATEGORY_GAZETTEER)
    )
    if place is None:
        return None
    return PlaceNameMatch(
        place_name=place,
        confidence=NAMED_LOCATION_CONFIDENCE,
        strategy="named_location",
    )


def _parse_direction(match: re.Match) -> Direction:
    if match.group("en"):
        token = re.sub(r"[\s-]", "", match.group("en").lower())
        return _EN_DIRECTIONS[token.removesuffix("s")]
    return _ZH_DIRECTIONS[match.group("zh_prefixed") or match.group("zh_suffixed")]


def _parse_distance(text: str) -> float | None:
    for pattern, factor in _DISTANCE_UNITS:
        match = pattern.search(text)
        if match:
            return float(match.group(1)) * factor
    return None


def extract_direction_distance(text: str) -> Extraction | None:
    """Strategy 4: a direction with an optional distance (default 100 m)."""
    match = _DIRECTION_PATTERN.search(text)
    if match is None:
        return None

    direction = _parse_direction(match)
    distance = _parse_distance(text)
    if distance is None:
        if (
            match.group("en")
            and direction in _RELATIVE_DIRECTIONS
            and not _MOVE_VERB_PATTERN.search(text)
        ):
            return None
        return DirectionMatch(
            direction=direction,
            distance_meters=DEFAULT_DISTANCE_METERS,
            confidence=DIRECTION_DEFAULT_DISTANCE_CONFIDENCE,
            strategy="direction_distance",
        )
    return DirectionMatch(
        direction=direction,
        distance_meters=distance,
        confidence=DIRECTION_WITH_DISTANCE_CONFIDENCE,
        strategy="direction_distance",
    )


def extract_relative_movement(text: str) -> Extraction | None:
    """Strategy 5: small nudges ("a bit closer"). Not supported yet."""
    return None


STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("coordinates", extract_coordinates),
    ("map_link", extract_map_link),
    ("named_location", extract_named_location),
    ("direction_distance", extract_direction_distance),
    ("relative_movement", extract_relative_movement),
)


def detect_speed(text: str) -> SpeedProfile:
    """Pick a speed profile from pace words in the text."""
    if _FAST_PATTERN.search(text):
        return SpeedProfile.FAST
    if _SLOW_PATTERN.search(text):
        return SpeedProfile.SLOW
    return SpeedProfile.NORMAL


# =============================================================================
# Extractor
# =============================================================================


@dataclass
class CommandExtractor:
    """
    Extracts and validates movement commands.

    Place names are resolved through the geocoder within the call; a
    geocoder failure or timeout is an extraction failure, there is no local
    fallback.
    """

    geocoder: Geocoder | None = None
    validator: CommandValidator = field(default_factory=CommandValidator)
    geocoder_timeout: float = 10.0
    strategies: tuple[tuple[str, Strategy], ...] = STRATEGIES

    async def extract(self, text: str) -> MovementCommand:
        """
        Extract a movement command from text.

        Args:
            text: Raw user input

        Returns:
            An unvalidated MovementCommand (destination unset for
            direction moves)

        Raises:
            NotAMovementCommandError: If the text has no movement vocabulary
            ExtractionError: If no strategy matched or geocoding failed
        """
        text = text.strip()
        if not is_movement_command(text):
            raise NotAMovementCommandError("not a movement command")

        for name, strategy in self.strategies:
            extraction = strategy(text)
            if extraction is not None:
                logger.debug("Strategy %s matched %r", name, text)
                return await self._to_command(extraction, text)

        raise ExtractionError("unable to parse movement command")

    async def parse(
        self, text: str, current_position: Coordinate | None
    ) -> MovementCommand:
        """
        Extract a command and run it through the validator.

        Raises:
            MovementError: Any extraction or validation failure
        """
        command = await self.extract(text)
        return self.validator.validate(command, current_position)

    async def _to_command(self, extraction: Extraction, text: str) -> MovementCommand:
        speed = detect_speed(text)

        if isinstance(extraction, CoordinateMatch):
            return MovementCommand(
                kind=MovementKind.ABSOLUTE_MOVE,
                destination=extraction.coordinate,
                speed=speed,
                original_text=text,
                confidence=extraction.confidence,
                strategy=extraction.strategy,
                source_url=extraction.source_url,
            )

        if isinstance(extraction, DirectionMatch):
            return MovementCommand(
                kind=MovementKind.DIRECTION_MOVE,
                direction=extraction.direction,
                distance_meters=extraction.distance_meters,
                speed=speed,
                original_text=text,
                confidence=extraction.confidence,
                strategy=extraction.strategy,
            )

        destination = await self._resolve(extraction.place_name)
        return MovementCommand(
            kind=MovementKind.ABSOLUTE_MOVE,
            destination=destination,
            speed=speed,
            original_text=text,
            confidence=extraction.confidence,
            strategy=extraction.strategy,
            requires_external_resolution=True,
            place_name=extraction.place_name,
            source_url=extraction.source_url,
        )

    async def _resolve(self, place_name: str) -> Coordinate:
        if self.geocoder is None:
            raise ExtractionError("geocoding service not available")
        try:
            return await asyncio.wait_for(
                self.geocoder.resolve(place_name), timeout=self.geocoder_timeout
            )
        except asyncio.TimeoutError as e:
            logger.warning("Geocoding %r timed out after %.1fs", place_name, self.geocoder_timeout)
            raise ExtractionError(f"geocoding timed out for {place_name!r}") from e
        except GeocodingError as e:
            raise ExtractionError(f"failed to resolve location {place_name!r}: {e}") from e
