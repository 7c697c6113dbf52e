import csv
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError
from pydantic import ValidationError

from safeplan.domains.workout.contract import canonicalize_tokens
from safeplan.domains.workout.schemas import LibraryExercise
from safeplan.models import Exercise

REQUIRED_COLUMNS = {"name", "category", "muscle_groups", "equipment", "safety_rating", "difficulty_level"}

EQUIPMENT_ALIASES = {
    "none": "bodyweight",
    "body weight": "bodyweight",
    "body_weight": "bodyweight",
    "dumbbells": "dumbbell",
    "kettlebells": "kettlebell",
    "band": "resistance_band",
    "bands": "resistance_band",
    "resistance band": "resistance_band",
    "trx": "suspension_trainer",
}


def split_list(raw: str) -> list[str]:
    """'a, b; c' / 'a|b' -> ['a', 'b', 'c']"""
    if not raw:
        return []
    for sep in (";", "|"):
        raw = raw.replace(sep, ",")
    return [p.strip() for p in raw.split(",") if p.strip()]


def normalize_equipment(raw: str) -> list[str]:
    out = []
    for p in canonicalize_tokens(split_list(raw)):
        out.append(EQUIPMENT_ALIASES.get(p, p.replace(" ", "_")))
    return canonicalize_tokens(out)


def parse_bool(raw: str) -> bool:
    return (raw or "").strip().lower() in {"1", "true", "yes", "y"}


class Command(BaseCommand):
    help = "Import the curated exercise library from a CSV file."

    def add_arguments(self, parser):
        parser.add_argument("--csv", required=True, help="Path to exercises.csv")

    def handle(self, *args, **options):
        csv_path = Path(options["csv"])
        if not csv_path.exists():
            raise CommandError(f"CSV not found: {csv_path}")

        created, updated, skipped = 0, 0, 0
        with csv_path.open("r", encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            if not REQUIRED_COLUMNS.issubset(set(reader.fieldnames or [])):
                raise CommandError(f"CSV columns must include: {sorted(REQUIRED_COLUMNS)}. Got: {reader.fieldnames}")

            for line_no, row in enumerate(reader, start=2):
                name = (row.get("name") or "").strip()
                if not name:
                    continue

                try:
                    # same checks the engine applies to library snapshots
                    entry = LibraryExercise(
                        id="0",
                        name=name,
                        category=(row.get("category") or "strength").strip().lower(),
                        movement_pattern=(row.get("movement_pattern") or "").strip().lower(),
                        muscle_groups=split_list(row.get("muscle_groups") or ""),
                        equipment=normalize_equipment(row.get("equipment") or ""),
                        safety_rating=int(row.get("safety_rating") or 0),
                        difficulty_level=int(row.get("difficulty_level") or 0),
                        contraindications=canonicalize_tokens(split_list(row.get("contraindications") or "")),
                        is_compound=parse_bool(row.get("is_compound") or ""),
                    )
                except (ValueError, ValidationError) as e:
                    skipped += 1
                    self.stderr.write(f"line {line_no}: skipped {name!r}: {e}")
                    continue

                _, is_created = Exercise.objects.update_or_create(
                    name=entry.name,
                    defaults={
                        "category": entry.category,
                        "movement_pattern": entry.movement_pattern,
                        "muscle_groups": entry.muscle_groups,
                        "equipment": entry.equipment,
                        "safety_rating": entry.safety_rating,
                        "difficulty_level": entry.difficulty_level,
                        "contraindications": entry.contraindications,
                        "is_compound": entry.is_compound,
                    },
                )
                if is_created:
                    created += 1
                else:
                    updated += 1

        self.stdout.write(self.style.SUCCESS(f"Import done. created={created}, updated={updated}, skipped={skipped}"))
