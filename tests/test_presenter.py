import pytest

from pointgps.elevation import ElevationEnricher
from pointgps.errors import DuplicatePointError
from pointgps.presenter import FormState, PointPresenter, pixel_distance, world_pixels


@pytest.fixture
def presenter(store, spy_fetcher):
    return PointPresenter(store, ElevationEnricher(store, spy_fetcher))


def test_world_pixels_origin():
    assert world_pixels(0.0, -180.0, 0) == pytest.approx((0.0, 128.0))
    assert world_pixels(0.0, 0.0, 1) == pytest.approx((256.0, 256.0))


def test_pixel_distance_grows_with_zoom():
    a, b = (34.0, 135.0), (34.0, 135.001)
    assert pixel_distance(a, b, 18) > pixel_distance(a, b, 10)
    assert pixel_distance(a, a, 15) == 0


def test_select_fills_elevation_and_form(presenter, store, spy_fetcher):
    store.add(34.5, 135.25, id="A-01", location="Col")
    form = presenter.select("A-01")
    assert presenter.selected_id == "A-01"
    assert form.elevation == "250"
    assert form.lat_decimal == "34.50000"
    assert form.dms == "135°15'0.00\"E 34°30'0.00\"N"
    assert form.point_count == 1
    assert len(spy_fetcher.calls) == 1


def test_select_unknown_gives_blank_form(presenter):
    form = presenter.select("nope")
    assert presenter.selected_id is None
    assert form == FormState()


def test_add_refuses_nearby_point(presenter):
    presenter.add_at(34.0, 135.0, zoom=15)
    with pytest.raises(DuplicatePointError) as exc:
        presenter.add_at(34.00001, 135.00001, zoom=15)
    assert exc.value.existing_id == "仮01"
    assert "仮01" in str(exc.value)

    wp, message = presenter.add_at(34.1, 135.1, zoom=15)
    assert wp.id == "仮02"
    assert message == "ポイント 仮02 を追加しました"
    assert presenter.selected_id == "仮02"


def test_add_without_zoom_skips_check(presenter, store):
    presenter.add_at(34.0, 135.0)
    presenter.add_at(34.0, 135.0)
    assert store.count() == 2


def test_apply_form_normalises_and_renames(presenter, store):
    store.add(34.0, 135.0, id="仮01")
    presenter.register_handle("仮01", "marker-1")
    presenter.select("仮01")

    message = presenter.apply_form(FormState(point_id="b2", elevation="812.45", remarks="分岐"))
    assert message == "ポイント B-02 を更新しました"
    assert presenter.selected_id == "B-02"
    assert presenter.handle_for("B-02") == "marker-1"
    assert presenter.handle_for("仮01") is None
    wp = store.get_by_id("B-02")
    assert (wp.elevation, wp.remarks) == ("812.5", "分岐")


def test_apply_form_rejects_malformed_id(presenter, store):
    store.add(34.0, 135.0, id="A-01", location="Col")
    presenter.select("A-01")
    message = presenter.apply_form(FormState(point_id="山頂", location="x"))
    assert "X-nn" in message
    assert store.get_by_id("A-01").location == "Col"


def test_apply_form_blank_id_keeps_current(presenter, store):
    store.add(34.0, 135.0, id="仮01", elevation="5")
    presenter.select("仮01")
    presenter.apply_form(FormState(point_id="", elevation="5", location="Hut"))
    assert store.get_by_id("仮01").location == "Hut"


def test_apply_form_without_selection(presenter):
    assert presenter.apply_form(FormState()) == "ポイントが選択されていません"


def test_move_and_delete(presenter, store):
    store.add(34.0, 135.0, id="A-01")
    assert presenter.move("A-01", 34.5, 135.5) == "ポイント A-01 を移動しました"
    assert store.get_by_id("A-01").lat == 34.5
    assert presenter.move("nope", 1.0, 1.0) is None

    presenter.register_handle("A-01", object())
    presenter.select("A-01")
    assert presenter.delete_selected() == "ポイント A-01 を削除しました"
    assert store.count() == 0
    assert presenter.handles == {}
    assert presenter.delete_selected() == "ポイントが選択されていません"


def test_cancel_modes(presenter):
    presenter.adding = presenter.moving = True
    presenter.cancel_modes()
    assert not presenter.adding and not presenter.moving
