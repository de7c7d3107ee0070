"""
Tests for movement command extraction.
"""

from __future__ import annotations

import asyncio

import pytest

from geowalk.engine.errors import (
    CommandRejectedError,
    ExtractionError,
    NotAMovementCommandError,
)
from geowalk.engine.extractor import (
    DEFAULT_DISTANCE_METERS,
    CommandExtractor,
    detect_speed,
    extract_coordinates,
    extract_direction_distance,
    extract_map_link,
    extract_named_location,
    extract_relative_movement,
    is_movement_command,
)
from geowalk.geo.geocoding import StaticGeocoder, create_geocoder
from geowalk.models import (
    Coordinate,
    CoordinateMatch,
    Direction,
    DirectionMatch,
    ErrorCode,
    MovementKind,
    PlaceNameMatch,
    SpeedProfile,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def taipei() -> Coordinate:
    return Coordinate(latitude=25.0330, longitude=121.5654)


@pytest.fixture
def geocoder() -> StaticGeocoder:
    return create_geocoder("static")  # type: ignore[return-value]


@pytest.fixture
def extractor(geocoder: StaticGeocoder) -> CommandExtractor:
    return CommandExtractor(geocoder=geocoder)


class SlowGeocoder:
    """Geocoder that never answers in time."""

    async def resolve(self, name: str) -> Coordinate:
        await asyncio.sleep(1.0)
        return Coordinate(latitude=25.0, longitude=121.5)


# =============================================================================
# Gate
# =============================================================================


class TestMovementGate:
    """Tests for the movement vocabulary gate."""

    @pytest.mark.parametrize(
        "text",
        [
            "move 200 meters north",
            "go to Tainan",
            "take me to the night market",
            "往北走100公尺",
            "帶我去台北101",
            "25.0330, 121.5654",
            "https://maps.app.goo.gl/abc123",
        ],
    )
    def test_accepts_movement(self, text: str) -> None:
        assert is_movement_command(text)

    @pytest.mark.parametrize("text", ["hello", "what is the weather like", "你好", ""])
    def test_rejects_chatter(self, text: str) -> None:
        assert not is_movement_command(text)

    def test_english_words_need_word_boundaries(self) -> None:
        # "ongoing" contains "go"
        assert not is_movement_command("this is an ongoing discussion")


# =============================================================================
# Strategy 1: coordinates
# =============================================================================


class TestExtractCoordinates:
    """Tests for literal coordinate pairs."""

    def test_bare_pair(self) -> None:
        result = extract_coordinates("go to 25.0330, 121.5654 please")
        assert isinstance(result, CoordinateMatch)
        assert result.coordinate == Coordinate(latitude=25.0330, longitude=121.5654)
        assert result.confidence == 0.9
        assert result.strategy == "coordinates"

    def test_fullwidth_comma(self) -> None:
        result = extract_coordinates("去 24.1477，120.6736")
        assert isinstance(result, CoordinateMatch)
        assert result.coordinate.latitude == 24.1477

    def test_labelled_english(self) -> None:
        result = extract_coordinates("move to lat: 22.6273 lng: 120.3014")
        assert isinstance(result, CoordinateMatch)
        assert result.coordinate == Coordinate(latitude=22.6273, longitude=120.3014)

    def test_labelled_chinese(self) -> None:
        result = extract_coordinates("移動到 緯度：23.8572 經度：120.9156")
        assert isinstance(result, CoordinateMatch)
        assert result.coordinate == Coordinate(latitude=23.8572, longitude=120.9156)

    def test_out_of_range_pair_ignored(self) -> None:
        assert extract_coordinates("go to 95.0, 200.0") is None

    def test_pair_inside_url_ignored(self) -> None:
        assert extract_coordinates("https://www.google.com/maps/@25.0330,121.5654,15z") is None

    def test_no_pair(self) -> None:
        assert extract_coordinates("move 200 meters north") is None


# =============================================================================
# Strategy 2: map links
# =============================================================================


class TestExtractMapLink:
    """Tests for mapping-service links."""

    def test_at_coordinates(self) -> None:
        url = "https://www.google.com/maps/@25.0339,121.5645,17z"
        result = extract_map_link(f"take me here {url}")
        assert isinstance(result, CoordinateMatch)
        assert result.coordinate == Coordinate(latitude=25.0339, longitude=121.5645)
        assert result.strategy == "map_link"
        assert result.source_url == url

    def test_query_coordinates(self) -> None:
        result = extract_map_link("https://maps.google.com/?q=25.0478,121.5170")
        assert isinstance(result, CoordinateMatch)
        assert result.coordinate == Coordinate(latitude=25.0478, longitude=121.5170)

    def test_encoded_comma(self) -> None:
        result = extract_map_link("https://www.google.com/maps/search/?api=1&query=x&ll=24.1477%2C120.6736")
        assert isinstance(result, CoordinateMatch)
        assert result.coordinate.longitude == 120.6736

    def test_place_with_plus(self) -> None:
        result = extract_map_link("https://www.google.com/maps/place/Taipei+101")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "Taipei 101"
        assert result.confidence == 0.8
        assert result.strategy == "map_link_place"

    def test_place_percent_encoded(self) -> None:
        result = extract_map_link("https://www.google.com/maps/search/Sun%20Moon%20Lake")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "Sun Moon Lake"

    def test_place_chinese(self) -> None:
        result = extract_map_link("https://www.google.com/maps/place/%E5%8F%B0%E5%8D%97")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "台南"

    def test_center_coordinates(self) -> None:
        result = extract_map_link("https://www.google.com/maps/@?api=1&map_action=map&center=22.6273,120.3014")
        assert isinstance(result, CoordinateMatch)
        assert result.coordinate == Coordinate(latitude=22.6273, longitude=120.3014)

    def test_non_map_url(self) -> None:
        assert extract_map_link("https://example.com/maps/@25.0,121.5") is None


# =============================================================================
# Strategy 3: named locations
# =============================================================================


class TestExtractNamedLocation:
    """Tests for place names."""

    def test_known_city_beats_trailing_clause(self) -> None:
        result = extract_named_location("go to Tainan to eat noodles")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "Tainan"
        assert result.confidence == 0.9

    def test_longest_entry_wins(self) -> None:
        result = extract_named_location("帶我去台北101")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "台北101"

    def test_multi_word_english_name(self) -> None:
        result = extract_named_location("walk to shilin night market")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "shilin night market"

    def test_free_form_phrase_is_trimmed(self) -> None:
        result = extract_named_location("go to the Blue Whale Cafe and relax")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "Blue Whale Cafe"

    def test_free_form_phrase_stops_at_punctuation(self) -> None:
        result = extract_named_location("take me to Rainbow Village, thanks")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "Rainbow Village"

    def test_chinese_phrase_stops_at_activity(self) -> None:
        result = extract_named_location("我想去勝利星村吃飯")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "勝利星村"

    def test_direction_is_not_a_place(self) -> None:
        assert extract_named_location("move 200 meters north") is None

    def test_distance_is_not_a_place(self) -> None:
        assert extract_named_location("go to 300 meters") is None

    @pytest.mark.parametrize("text", ["我收到你的訊息了", "我看到他了", "找不到"])
    def test_bare_dao_is_not_a_motion_verb(self, text: str) -> None:
        assert extract_named_location(text) is None

    def test_compound_motion_verb(self) -> None:
        result = extract_named_location("移動到勝利星村")
        assert isinstance(result, PlaceNameMatch)
        assert result.place_name == "勝利星村"

    def test_single_character_capture_is_rejected(self) -> None:
        assert extract_named_location("我去了") is None


# =============================================================================
# Strategy 4: direction + distance
# =============================================================================


class TestExtractDirectionDistance:
    """Tests for directions with distances."""

    def test_meters(self) -> None:
        result = extract_direction_distance("move 200 meters north")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.NORTH
        assert result.distance_meters == 200
        assert result.confidence == 0.8

    def test_default_distance(self) -> None:
        result = extract_direction_distance("walk west")
        assert isinstance(result, DirectionMatch)
        assert result.distance_meters == DEFAULT_DISTANCE_METERS
        assert result.confidence == 0.7

    def test_kilometers(self) -> None:
        result = extract_direction_distance("head northeast 2 km")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.NORTHEAST
        assert result.distance_meters == 2000

    def test_hyphenated_octant(self) -> None:
        result = extract_direction_distance("go south-west 1.5 km")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.SOUTHWEST
        assert result.distance_meters == 1500

    def test_steps(self) -> None:
        result = extract_direction_distance("forward 4 steps")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.FORWARD
        assert result.distance_meters == 3.0

    def test_back(self) -> None:
        result = extract_direction_distance("go back 50 meters")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.BACKWARD

    def test_chinese_prefixed(self) -> None:
        result = extract_direction_distance("往北走100公尺")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.NORTH
        assert result.distance_meters == 100

    def test_chinese_suffixed(self) -> None:
        result = extract_direction_distance("東南方走2公里")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.SOUTHEAST
        assert result.distance_meters == 2000

    def test_chinese_steps(self) -> None:
        result = extract_direction_distance("向左走20步")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.LEFT
        assert result.distance_meters == 15.0

    @pytest.mark.parametrize("text", ["that's right", "left it at home", "I'll be back"])
    def test_bare_relative_word_is_not_a_move(self, text: str) -> None:
        assert extract_direction_distance(text) is None

    def test_relative_word_with_verb(self) -> None:
        result = extract_direction_distance("walk right")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.RIGHT
        assert result.distance_meters == DEFAULT_DISTANCE_METERS

    def test_relative_word_with_distance(self) -> None:
        result = extract_direction_distance("left 30 meters")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.LEFT
        assert result.distance_meters == 30

    def test_bare_cardinal_still_moves(self) -> None:
        result = extract_direction_distance("north")
        assert isinstance(result, DirectionMatch)
        assert result.direction == Direction.NORTH

    def test_no_direction(self) -> None:
        assert extract_direction_distance("go somewhere nice") is None


class TestRelativeMovement:
    """Strategy 5 is registered but never matches."""

    def test_returns_none(self) -> None:
        assert extract_relative_movement("a bit closer") is None


class TestDetectSpeed:
    """Tests for pace detection."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("run north 500 m", SpeedProfile.FAST),
            ("quickly go to Taipei", SpeedProfile.FAST),
            ("跑到台中", SpeedProfile.FAST),
            ("stroll south", SpeedProfile.SLOW),
            ("慢慢往東走", SpeedProfile.SLOW),
            ("walk east", SpeedProfile.NORMAL),
        ],
    )
    def test_detect(self, text: str, expected: SpeedProfile) -> None:
        assert detect_speed(text) == expected


# =============================================================================
# CommandExtractor
# =============================================================================


class TestCommandExtractor:
    """Tests for the strategy cascade and place resolution."""

    @pytest.mark.asyncio
    async def test_not_a_movement(self, extractor: CommandExtractor) -> None:
        with pytest.raises(NotAMovementCommandError) as exc_info:
            await extractor.extract("hello")
        assert exc_info.value.code == ErrorCode.NOT_A_MOVEMENT_COMMAND

    @pytest.mark.asyncio
    async def test_no_strategy_matches(self, extractor: CommandExtractor) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            await extractor.extract("go somewhere nice")
        assert exc_info.value.code == ErrorCode.PARSE_ERROR

    @pytest.mark.asyncio
    async def test_coordinates_beat_place_names(self, extractor: CommandExtractor) -> None:
        command = await extractor.extract("go to Taipei 24.1477, 120.6736")
        assert command.strategy == "coordinates"
        assert command.destination == Coordinate(latitude=24.1477, longitude=120.6736)
        assert command.requires_external_resolution is False

    @pytest.mark.asyncio
    async def test_place_is_resolved(
        self, extractor: CommandExtractor, geocoder: StaticGeocoder
    ) -> None:
        command = await extractor.extract("go to Tainan to eat noodles")
        assert command.kind == MovementKind.ABSOLUTE_MOVE
        assert command.place_name == "Tainan"
        assert command.requires_external_resolution is True
        assert command.destination == Coordinate(latitude=22.9999, longitude=120.2270)
        assert geocoder.call_count == 1

    @pytest.mark.asyncio
    async def test_map_link_place_is_resolved(self, extractor: CommandExtractor) -> None:
        url = "https://www.google.com/maps/place/Taipei+101"
        command = await extractor.extract(url)
        assert command.strategy == "map_link_place"
        assert command.source_url == url
        assert command.destination == Coordinate(latitude=25.0339, longitude=121.5645)

    @pytest.mark.asyncio
    async def test_direction_has_no_destination_yet(self, extractor: CommandExtractor) -> None:
        command = await extractor.extract("run 300 meters east")
        assert command.kind == MovementKind.DIRECTION_MOVE
        assert command.destination is None
        assert command.direction == Direction.EAST
        assert command.speed == SpeedProfile.FAST
        assert command.original_text == "run 300 meters east"

    @pytest.mark.asyncio
    async def test_extraction_is_deterministic(self, extractor: CommandExtractor) -> None:
        first = await extractor.extract("往北走100公尺")
        second = await extractor.extract("往北走100公尺")
        assert first == second

    @pytest.mark.asyncio
    async def test_coordinate_extraction_is_deterministic(
        self, extractor: CommandExtractor
    ) -> None:
        first = await extractor.extract("go to 24.1477, 120.6736")
        second = await extractor.extract("go to 24.1477, 120.6736")
        assert first == second
        assert first.destination == Coordinate(latitude=24.1477, longitude=120.6736)

    @pytest.mark.asyncio
    async def test_chatter_with_dao_skips_geocoder(
        self, extractor: CommandExtractor, geocoder: StaticGeocoder
    ) -> None:
        with pytest.raises(ExtractionError):
            await extractor.extract("我收到你的訊息了")
        assert geocoder.call_count == 0

    @pytest.mark.asyncio
    async def test_no_geocoder(self) -> None:
        extractor = CommandExtractor(geocoder=None)
        with pytest.raises(ExtractionError, match="not available"):
            await extractor.extract("go to Tainan")

    @pytest.mark.asyncio
    async def test_unknown_place(self, extractor: CommandExtractor) -> None:
        with pytest.raises(ExtractionError, match="Atlantis"):
            await extractor.extract("go to Atlantis")

    @pytest.mark.asyncio
    async def test_geocoder_timeout(self) -> None:
        extractor = CommandExtractor(geocoder=SlowGeocoder(), geocoder_timeout=0.01)
        with pytest.raises(ExtractionError, match="timed out"):
            await extractor.extract("go to Tainan")

    @pytest.mark.asyncio
    async def test_parse_validates(self, extractor: CommandExtractor, taipei: Coordinate) -> None:
        command = await extractor.parse("move 200 meters north", taipei)
        assert command.safety_checked is True
        assert command.destination is not None
        assert command.destination.longitude == taipei.longitude
        assert command.destination.latitude == pytest.approx(25.0330 + 200 / 111_000)
        assert command.estimated_seconds == 80

    @pytest.mark.asyncio
    async def test_parse_rejects_out_of_bounds(
        self, extractor: CommandExtractor, taipei: Coordinate
    ) -> None:
        with pytest.raises(CommandRejectedError) as exc_info:
            await extractor.parse("go to 35.6762, 139.6503", taipei)
        assert exc_info.value.code == ErrorCode.OUT_OF_BOUNDS
