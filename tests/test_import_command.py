"""import_exercises management command."""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from safeplan.models import Exercise

pytestmark = pytest.mark.django_db

HEADER = "name,category,muscle_groups,equipment,safety_rating,difficulty_level,contraindications,is_compound\n"


def _write(tmp_path, body, header=HEADER):
    path = tmp_path / "exercises.csv"
    path.write_text(header + body, encoding="utf-8")
    return path


def _run(path):
    out, err = StringIO(), StringIO()
    call_command("import_exercises", csv=str(path), stdout=out, stderr=err)
    return out.getvalue(), err.getvalue()


def test_import_creates_and_normalizes(tmp_path):
    path = _write(tmp_path, (
        'Goblet Squat,Strength,"quadriceps; glutes",Dumbbells,5,2,knee,yes\n'
        'Band Pull-apart,strength,shoulders,resistance band,5,1,,no\n'
        ',strength,core,bodyweight,5,1,,\n'
    ))

    out, err = _run(path)

    assert "created=2, updated=0, skipped=0" in out
    assert err == ""
    goblet = Exercise.objects.get(name="Goblet Squat")
    assert goblet.category == "strength"
    assert goblet.equipment == ["dumbbell"]
    assert goblet.muscle_groups == ["quadriceps", "glutes"]
    assert goblet.contraindications == ["knee"]
    assert goblet.is_compound is True
    assert Exercise.objects.get(name="Band Pull-apart").equipment == ["resistance_band"]


def test_import_skips_invalid_rows(tmp_path):
    path = _write(tmp_path, (
        "Wall Sit,endurance,quadriceps,none,4,1,,\n"
        "Mystery Lift,strength,back,barbell,9,3,,\n"
        "Half Rep,strength,back,barbell,abc,3,,\n"
    ))

    out, err = _run(path)

    assert "created=1, updated=0, skipped=2" in out
    assert "line 3: skipped 'Mystery Lift'" in err
    assert "line 4: skipped 'Half Rep'" in err
    assert Exercise.objects.get().equipment == ["bodyweight"]


def test_reimport_updates_by_name(tmp_path):
    _run(_write(tmp_path, "Plank,endurance,core,bodyweight,5,1,,\n"))
    out, _ = _run(_write(tmp_path, "Plank,endurance,core,bodyweight,4,2,,\n"))

    assert "created=0, updated=1, skipped=0" in out
    plank = Exercise.objects.get(name="Plank")
    assert (plank.safety_rating, plank.difficulty_level) == (4, 2)


def test_missing_columns(tmp_path):
    path = _write(tmp_path, "Plank,core\n", header="name,muscle_groups\n")
    with pytest.raises(CommandError):
        _run(path)


def test_missing_file(tmp_path):
    with pytest.raises(CommandError):
        _run(tmp_path / "nope.csv")
