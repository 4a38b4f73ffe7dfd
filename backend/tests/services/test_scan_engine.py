from azurite.models.mod import Mod, ScanResult
from azurite.schemas.mod import ModCreate
from azurite.services import listing, mod_service
from azurite.services.scan_engine import (
    THREAT_REASON,
    BackgroundScanEngine,
    ScanVerdict,
    SimulatedVerdictSource,
    record_verdict,
)


def _visible_ids(session) -> list[int]:
    return [m.id for m in listing.list_mods(session, listing.ListingQuery()).mods]


class TestRecordVerdict:
    def test_clean_verdict_makes_mod_visible(self, session, make_user, make_game, scan_engine):
        owner = make_user()
        game = make_game()
        mod = mod_service.create_mod(
            session, ModCreate(name="Fresh", version="1.0", game_id=game.id), owner.id, scan_engine
        )
        assert scan_engine.submitted == [(mod.id, None)]
        assert mod.scan_result == ScanResult.PENDING
        assert mod.id not in _visible_ids(session)

        scan_engine.deliver_all()
        # End the read transaction so the verdict written elsewhere is visible.
        session.commit()
        mod = session.get(Mod, mod.id)
        assert mod.is_scanned
        assert mod.scan_result == ScanResult.CLEAN
        assert mod.id in _visible_ids(session)

    def test_threat_verdict_rejects(self, session, make_user, make_game, make_mod):
        mod = make_mod(make_game(), make_user(), visible=False)
        assert record_verdict(session, mod.id, ScanVerdict.threat())

        session.refresh(mod)
        assert mod.is_scanned
        assert mod.scan_result == ScanResult.THREAT
        assert mod.is_rejected
        assert mod.rejection_reason == THREAT_REASON
        assert mod.id not in _visible_ids(session)

    def test_verdict_for_deleted_mod_is_dropped(self, session):
        assert record_verdict(session, 999, ScanVerdict.clean()) is False

    def test_later_verdict_wins(self, session, make_user, make_game, make_mod):
        mod = make_mod(make_game(), make_user(), visible=False)
        record_verdict(session, mod.id, ScanVerdict.clean())
        record_verdict(session, mod.id, ScanVerdict.threat())
        session.refresh(mod)
        assert mod.scan_result == ScanResult.THREAT


class TestSimulatedVerdictSource:
    def test_mod_scans_are_clean(self):
        assert SimulatedVerdictSource().verdict_for(13, None).result == ScanResult.CLEAN

    def test_every_thirteenth_file_is_flagged(self):
        source = SimulatedVerdictSource()
        assert source.verdict_for(1, 26).result == ScanResult.THREAT
        assert source.verdict_for(1, 27).result == ScanResult.CLEAN


class TestBackgroundScanEngine:
    def test_delivers_after_delay(self, engine, session, make_user, make_game, make_mod):
        mod = make_mod(make_game(), make_user(), visible=False)
        bg = BackgroundScanEngine(mod_delay=0, file_delay=0, workers=2, engine=engine)
        try:
            bg.submit(mod.id)
            bg.drain(timeout=5)
        finally:
            bg.shutdown(wait=True)

        session.commit()
        session.refresh(mod)
        assert mod.is_scanned
        assert mod.scan_result == ScanResult.CLEAN

    def test_shutdown_abandons_pending_scans(
        self, engine, session, make_user, make_game, make_mod
    ):
        mod = make_mod(make_game(), make_user(), visible=False)
        bg = BackgroundScanEngine(mod_delay=60, workers=1, engine=engine)
        bg.submit(mod.id)
        bg.shutdown(wait=True)

        session.commit()
        session.refresh(mod)
        assert not mod.is_scanned
        assert mod.scan_result == ScanResult.PENDING
