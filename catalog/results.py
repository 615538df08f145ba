from dataclasses import asdict, dataclass


@dataclass
class ImportResult:
    ok: bool = True
    records_fetched: int = 0
    products_upserted: int = 0
    images_upserted: int = 0
    skipped_invalid: int = 0
    skipped_duplicate: int = 0
    batches_failed: int = 0
    records_failed: int = 0
    duration_seconds: float = 0.0
    error: str = ''

    def fail(self, message):
        self.ok = False
        # Keep the first error; later ones are usually consequences of it
        if not self.error:
            self.error = message

    def as_dict(self):
        return asdict(self)


@dataclass
class BatchResult:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped_existing: int = 0
    duration_seconds: float = 0.0
    error: str = ''

    def as_dict(self):
        return asdict(self)
