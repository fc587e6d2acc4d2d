"""
Unit tests for import phases
"""

import pytest
from core.exceptions import DatabaseError, ImportCancelledError, NetworkError, ResourceNotFoundError
from importer.phases import ClubsPhase, GamesPhase, JudgesPhase, PhaseContext, PlayersPhase, TournamentsPhase
from models.base import PhaseName, SyncType
from models.club import Club
from models.game import Game
from models.judge import Judge
from models.player import Player
from models.skipped_page import SkippedPage
from models.tournament import Tournament
from schemas.candidates import ClubCandidate, PlayerCandidate, SyncCheckpoint


def _context(repository, client, **kwargs) -> PhaseContext:
    kwargs.setdefault("prefetch", False)
    return PhaseContext(repository=repository, client=client, run_id="run-1", **kwargs)


class TestCheckpointCreation:

    def test_checkpoint_fields_and_message(self, fake_repository, fake_client):
        phase = ClubsPhase(_context(fake_repository, fake_client))

        checkpoint = phase.create_checkpoint(5, 10, ["a", "b"])

        assert checkpoint.phase == PhaseName.CLUBS
        assert checkpoint.last_batch_index == 5
        assert checkpoint.total_batches == 10
        assert checkpoint.processed_ids == ["a", "b"]
        assert "batch 6/10" in checkpoint.message

    def test_phase_name(self, fake_repository, fake_client):
        assert PlayersPhase(_context(fake_repository, fake_client)).get_phase_name() == PhaseName.PLAYERS


class TestListingPhase:

    @pytest.mark.asyncio
    async def test_every_page_committed_with_checkpoint(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        phase = ClubsPhase(_context(fake_repository, fake_client))

        result = await phase.execute()

        assert result.inserted == 3
        assert result.batches_processed == 2
        assert fake_repository.commits == 2
        assert {club.gomafia_id for club in fake_repository.rows(Club)} == {"c1", "c2", "c3"}

        checkpoint = await fake_repository.load_checkpoint()
        assert checkpoint.phase == PhaseName.CLUBS
        assert checkpoint.last_batch_index == 1
        assert sorted(checkpoint.processed_ids) == ["c1", "c2", "c3"]

    @pytest.mark.asyncio
    async def test_first_page_fetched_once(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages

        await ClubsPhase(_context(fake_repository, fake_client)).execute()

        assert fake_client.calls.count(("clubs", 1)) == 1

    @pytest.mark.asyncio
    async def test_resume_skips_committed_batches(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        resume_from = SyncCheckpoint(
            phase=PhaseName.CLUBS,
            last_batch_index=0,
            total_batches=2,
            processed_ids=["c1", "c2"],
            message="CLUBS: batch 1/2 committed",
        )

        result = await ClubsPhase(_context(fake_repository, fake_client)).execute(resume_from=resume_from)

        assert result.inserted == 1
        assert result.batches_processed == 1
        assert [club.gomafia_id for club in fake_repository.rows(Club)] == ["c3"]
        checkpoint = await fake_repository.load_checkpoint()
        assert sorted(checkpoint.processed_ids) == ["c1", "c2", "c3"]

    @pytest.mark.asyncio
    async def test_checkpoint_of_other_phase_is_ignored(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        resume_from = SyncCheckpoint(
            phase=PhaseName.PLAYERS, last_batch_index=1, total_batches=2, message="PLAYERS: batch 2/2 committed"
        )

        result = await ClubsPhase(_context(fake_repository, fake_client)).execute(resume_from=resume_from)

        assert result.inserted == 3

    @pytest.mark.asyncio
    async def test_existing_records_are_not_inserted_again(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        fake_repository.seed(Club(gomafia_id="c1", name="Red Stars"))

        result = await ClubsPhase(_context(fake_repository, fake_client)).execute()

        assert result.inserted == 2
        assert result.duplicates == 1
        assert len(fake_repository.rows(Club)) == 3

    @pytest.mark.asyncio
    async def test_invalid_records_are_counted_and_skipped(self, fake_repository, fake_client, html):
        fake_client.pages = {("clubs", 1): html.clubs([("c1", "Red Stars", "МСК"), ("c2", "X", "МСК")])}

        result = await ClubsPhase(_context(fake_repository, fake_client)).execute()

        assert result.inserted == 1
        assert result.invalid == 1

    @pytest.mark.asyncio
    async def test_unparseable_cell_rejects_only_its_row(self, fake_repository, fake_client, html):
        page = html.tournaments([("t1", "Spring Cup"), ("t2", "Summer Cup")])
        fake_client.pages = {("tournaments", 1): page.replace("60 000 ₽", "уточняется", 1)}

        result = await TournamentsPhase(_context(fake_repository, fake_client)).execute()

        assert result.inserted == 1
        assert result.invalid == 1
        assert result.skipped_batches == 0
        assert [t.gomafia_id for t in fake_repository.rows(Tournament)] == ["t2"]

    def test_record_of_another_kind_is_invalid(self, fake_repository, fake_client):
        phase = ClubsPhase(_context(fake_repository, fake_client))

        assert phase.validate_data(ClubCandidate(gomafia_id="c1", name="Red Stars"))
        assert not phase.validate_data(PlayerCandidate(gomafia_id="c1", name="Red Stars"))

    @pytest.mark.asyncio
    async def test_unparseable_page_is_recorded_and_skipped(self, fake_repository, fake_client, site_pages):
        site_pages[("clubs", 2)] = "<html><body>maintenance</body></html>"
        fake_client.pages = site_pages

        result = await ClubsPhase(_context(fake_repository, fake_client)).execute()

        assert result.inserted == 2
        assert result.skipped_batches == 1
        assert len(result.errors) == 1
        skipped = await fake_repository.list_skipped_pages()
        assert len(skipped) == 1
        assert skipped[0].page_number == 2
        assert skipped[0].error_code == "ParseError"
        assert (await fake_repository.load_checkpoint()).last_batch_index == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prefetch", [False, True])
    async def test_transport_error_keeps_earlier_batches(self, fake_repository, fake_client, site_pages, prefetch):
        site_pages[("clubs", 2)] = NetworkError("connection reset")
        fake_client.pages = site_pages

        with pytest.raises(NetworkError):
            await ClubsPhase(_context(fake_repository, fake_client, prefetch=prefetch)).execute()

        assert {club.gomafia_id for club in fake_repository.rows(Club)} == {"c1", "c2"}
        assert (await fake_repository.load_checkpoint()).last_batch_index == 0

    @pytest.mark.asyncio
    async def test_persistence_failure_rolls_back_batch(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        fake_repository.fail_on_add = DatabaseError("disk full")

        with pytest.raises(DatabaseError):
            await ClubsPhase(_context(fake_repository, fake_client)).execute()

        assert fake_repository.rollbacks == 1
        assert fake_repository.rows(Club) == []
        assert await fake_repository.load_checkpoint() is None

    @pytest.mark.asyncio
    async def test_cancellation_between_batches(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        checks = []

        async def should_cancel():
            checks.append(True)
            return len(checks) > 1

        phase = ClubsPhase(_context(fake_repository, fake_client, should_cancel=should_cancel, prefetch=True))

        with pytest.raises(ImportCancelledError):
            await phase.execute()

        assert {club.gomafia_id for club in fake_repository.rows(Club)} == {"c1", "c2"}
        assert (await fake_repository.load_checkpoint()).last_batch_index == 0

    @pytest.mark.asyncio
    async def test_incremental_reads_limited_pages(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages

        result = await ClubsPhase(_context(
            fake_repository, fake_client, sync_type=SyncType.INCREMENTAL, incremental_max_pages=1
        )).execute()

        assert result.total_batches == 1
        assert ("clubs", 2) not in fake_client.calls

    @pytest.mark.asyncio
    async def test_progress_stays_inside_phase_span(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages

        await ClubsPhase(_context(fake_repository, fake_client, progress_span=(20, 40))).execute()

        status = await fake_repository.get_status()
        assert status.progress == 40
        assert "CLUBS: batch 2/2 committed" == status.current_operation


class TestLinkingPhases:

    @pytest.mark.asyncio
    async def test_players_link_to_clubs_by_name(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        red_stars = Club(gomafia_id="c1", name="Red Stars")
        fake_repository.seed(red_stars)

        await PlayersPhase(_context(fake_repository, fake_client)).execute()

        players = {player.gomafia_id: player for player in fake_repository.rows(Player)}
        assert players["p1"].club_id == red_stars.id
        assert players["p3"].club_id is None
        assert players["p1"].region == "Москва"

    @pytest.mark.asyncio
    async def test_judges_link_to_players(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        alice = Player(gomafia_id="p1", name="Alice")
        fake_repository.seed(alice)

        await JudgesPhase(_context(fake_repository, fake_client)).execute()

        judges = {judge.gomafia_id: judge for judge in fake_repository.rows(Judge)}
        assert judges["p1"].player_id == alice.id
        assert judges["j7"].player_id is None


class TestGamesPhase:

    def _seed(self, repository):
        repository.seed(
            Tournament(gomafia_id="t1", name="Spring Cup"),
            Tournament(gomafia_id="t2", name="Summer Cup"),
            Player(gomafia_id="p1", name="Alice"),
            Player(gomafia_id="p2", name="Bob"),
        )

    @pytest.mark.asyncio
    async def test_one_batch_per_tournament(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        self._seed(fake_repository)

        result = await GamesPhase(_context(fake_repository, fake_client)).execute()

        assert result.total_batches == 2
        assert result.inserted == 3
        games = {game.gomafia_id: game for game in fake_repository.rows(Game)}
        ghost_seat = [p for p in games["103"].participations if p.player_gomafia_id == "p9"][0]
        assert ghost_seat.player_id is None
        alice_seat = [p for p in games["101"].participations if p.player_gomafia_id == "p1"][0]
        assert alice_seat.player_id is not None
        assert alice_seat.is_winner is True

    @pytest.mark.asyncio
    async def test_missing_tournament_page_is_skipped(self, fake_repository, fake_client, site_pages):
        del site_pages[("games", "t1")]
        fake_client.pages = site_pages
        self._seed(fake_repository)

        result = await GamesPhase(_context(fake_repository, fake_client)).execute()

        assert result.inserted == 2
        skipped = await fake_repository.list_skipped_pages()
        assert skipped[0].entity_id == "t1"
        assert skipped[0].error_code == "ResourceNotFoundError"

    @pytest.mark.asyncio
    async def test_incremental_skips_tournaments_with_games(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        self._seed(fake_repository)
        spring = [t for t in fake_repository.rows(Tournament) if t.gomafia_id == "t1"][0]
        fake_repository.seed(Game(gomafia_id="101", tournament_id=spring.id))

        result = await GamesPhase(_context(
            fake_repository, fake_client, sync_type=SyncType.INCREMENTAL
        )).execute()

        assert ("games", "t1") not in fake_client.calls
        assert result.total_batches == 2
        assert result.inserted == 2

    @pytest.mark.asyncio
    async def test_retry_fetches_only_the_skipped_tournament(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        self._seed(fake_repository)
        page = SkippedPage(id="sp-1", phase=PhaseName.GAMES, entity_id="t2", error_code="ResourceNotFoundError")

        inserted = await GamesPhase(_context(fake_repository, fake_client)).retry_skipped_page(page)

        assert inserted == 2
        assert fake_client.calls == [("games", "t2")]

    @pytest.mark.asyncio
    async def test_retry_of_unknown_tournament_raises(self, fake_repository, fake_client, site_pages):
        fake_client.pages = site_pages
        self._seed(fake_repository)
        page = SkippedPage(id="sp-1", phase=PhaseName.GAMES, entity_id="t404", error_code="ResourceNotFoundError")

        with pytest.raises(ResourceNotFoundError):
            await GamesPhase(_context(fake_repository, fake_client)).retry_skipped_page(page)
