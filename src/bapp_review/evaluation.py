"""Evaluation form fields, rejection reason codes and decision derivation."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from bapp_review.models import Decision, DecisionCode

DEFAULT_REJECT_NOTE = "Ditolak"


@dataclass(slots=True, frozen=True)
class EvaluationField:
    """One checklist column; the first option is the compliant default."""

    column: str
    label: str
    options: tuple[str, ...]

    @property
    def default(self) -> str:
        return self.options[0]


EVALUATION_FIELDS: tuple[EvaluationField, ...] = (
    EvaluationField("G", "GEO TAGGING", ("Sesuai", "Tidak Sesuai", "Tidak Ada")),
    EvaluationField(
        "H",
        "FOTO SEKOLAH/PAPAN NAMA",
        ("Sesuai", "Tidak Sesuai", "Tidak Ada", "Tidak Terlihat Jelas"),
    ),
    EvaluationField("I", "FOTO BOX & PIC", ("Sesuai", "Tidak Sesuai", "Tidak Ada")),
    EvaluationField("J", "FOTO KELENGKAPAN UNIT", ("Sesuai", "Tidak Sesuai", "Tidak Ada")),
    EvaluationField(
        "K",
        "DXDIAG",
        ("Sesuai", "Tidak Sesuai", "Tidak Ada", "Tidak terlihat jelas"),
    ),
    EvaluationField(
        "O",
        "BARCODE SN BAPP",
        ("Sesuai", "Tidak Sesuai", "Tidak Ada", "Tidak Terlihat Jelas"),
    ),
    EvaluationField(
        "Q",
        "BAPP HAL 1",
        (
            "Lengkap",
            "Tidak Lengkap",
            "Tidak Sesuai/Rusak/Tidak Ada",
            "BAPP Tidak Jelas",
            "Diedit",
            "Tidak Ada",
            "Ceklis tidak lengkap",
            "Data tidak lengkap",
            "Double ceklis",
            "Data BAPP sekolah tidak sesuai",
            "BAPP terpotong",
        ),
    ),
    EvaluationField(
        "R",
        "BAPP HAL 2",
        (
            "Lengkap",
            "Tidak Lengkap",
            "Ceklis Belum Dapat Diterima",
            "BAPP Tidak Jelas",
            "Diedit",
            "Tidak Ada",
            "Tanggal Tidak Ada",
            "Tanggal Tidak Konsisten",
            "Tidak Ada Paraf",
            "Ceklis Tidak Lengkap",
            "Double Ceklis",
            "Ceklis tidak sesuai/tidak ada",
            "BAPP terpotong",
        ),
    ),
    EvaluationField(
        "S",
        "TTD BAPP",
        (
            "Konsisten",
            "Tidak Konsisten",
            "TTD Tidak Ada",
            "Tidak ada nama terang pada bagian tanda tangan",
        ),
    ),
    EvaluationField("T", "STEMPEL", ("Sesuai", "Tidak Sesuai", "Tidak Ada", "Tidak Terlihat")),
)

REJECTION_REASONS: dict[str, dict[str, str]] = {
    "G": {
        "Tidak Sesuai": "(5A) Geo Tagging tidak sesuai",
        "Tidak Ada": "(5B) Geo Tagging tidak ada",
    },
    "H": {
        "Tidak Sesuai": "(4A) Foto sekolah tidak sesuai",
        "Tidak Ada": "(4B) Foto sekolah tidak ada",
        "Tidak Terlihat Jelas": "(4E) Foto sekolah tidak terlihat jelas",
    },
    "I": {
        "Tidak Sesuai": "(4C) Foto Box dan PIC tidak sesuai",
        "Tidak Ada": "(4D) Foto Box dan PIC tidak ada",
    },
    "J": {
        "Tidak Sesuai": "(2B) Foto kelengkapan Laptop tidak sesuai",
        "Tidak Ada": "(2A) Foto kelengkapan Laptop tidak ada",
    },
    "K": {
        "Tidak Sesuai": "(6A) DxDiag tidak sesuai",
        "Tidak Ada": "(6B) DxDiag tidak ada",
        "Tidak terlihat jelas": "(6C) DxDiag tidak terlihat jelas",
    },
    "O": {
        "Tidak Sesuai": "(1AI) Barcode SN pada BAPP tidak sesuai dengan data web DAC",
        "Tidak Ada": "(1AF) Barcode SN pada BAPP tidak ada",
        "Tidak Terlihat Jelas": "(1AG) Barcode SN pada BAPP tidak terlihat jelas",
    },
    "Q": {
        "Tidak Lengkap": "(1D) Ceklis BAPP tidak lengkap pada halaman 1",
        "Tidak Sesuai/Rusak/Tidak Ada": (
            "(1Q) Ceklis BAPP tidak sesuai/rusak/tidak ada pada halaman 1"
        ),
        "BAPP Tidak Jelas": "(1L) BAPP Halaman 1 tidak terlihat jelas",
        "Diedit": "(1S) BAPP Hal 1 tidak boleh diedit digital",
        "Tidak Ada": "(1W) BAPP Hal 1 tidak ada",
        "Ceklis tidak lengkap": "(1D) Ceklis BAPP tidak lengkap pada halaman 1",
        "Data tidak lengkap": "(1N) Data BAPP halaman 1 tidak lengkap",
        "Double ceklis": "(1I) Double ceklis pada halaman 1 BAPP",
        "Data BAPP sekolah tidak sesuai": (
            "(1K) Data BAPP sekolah tidak sesuai (cek NPSN pada tabel pertama "
            "dan NPSN dengan foto sekolah atau NPSN yang diinput)"
        ),
        "BAPP terpotong": "(1AL) BAPP Halaman 1 terpotong",
    },
    "R": {
        "Tidak Lengkap": "(1E) Ceklis BAPP tidak lengkap pada halaman 2",
        "Ceklis Belum Dapat Diterima": "(1Y) Ceklis Belum Dapat Diterima",
        "BAPP Tidak Jelas": "(1M) BAPP Halaman 2 tidak terlihat jelas",
        "Diedit": "(1T) BAPP Hal 2 tidak boleh diedit digital",
        "Tidak Ada": "(1X) BAPP Hal 2 tidak ada",
        "Tanggal Tidak Ada": "(1F) Tanggal pada BAPP hal 2 tidak ada",
        "Tanggal Tidak Konsisten": "(1Z) Tanggal pada BAPP hal 2 tidak konsisten",
        "Tidak Ada Paraf": "(1B) Simpulan BAPP pada hal 2 belum diparaf",
        "Ceklis Tidak Lengkap": "(1E) Ceklis BAPP tidak lengkap pada halaman 2",
        "Double Ceklis": "(1AK) Double ceklis pada halaman 2 BAPP",
        "Ceklis tidak sesuai/tidak ada": (
            "(1AJ) Ceklis BAPP hal 2, terdapat ceklis TIDAK SESUAI/TIDAK ADA"
        ),
        "BAPP terpotong": "(1AM) BAPP Halaman 2 terpotong",
    },
    "S": {
        "Tidak Konsisten": (
            "(1H) Data penanda tangan pada halaman 1 dan halaman 2 BAPP tidak konsisten"
        ),
        "TTD Tidak Ada": "(1G) Tidak ada tanda tangan dari pihak sekolah atau pihak kedua",
        "Tidak ada nama terang pada bagian tanda tangan": (
            "(1AH) Tidak ada nama terang pada bagian tanda tangan"
        ),
    },
    "T": {
        "Tidak Sesuai": "(1O) Stempel pada BAPP halaman 2 tidak sesuai dengan sekolahnya",
        "Tidak Ada": "(1P) Stempel tidak ada",
        "Tidak Terlihat": "(1AD) Stempel tidak terlihat",
    },
}

_FIELDS_BY_COLUMN: dict[str, EvaluationField] = {f.column: f for f in EVALUATION_FIELDS}


class EvaluationForm(Mapping[str, str]):
    """Reviewer selections keyed by sheet column, always fully populated."""

    def __init__(self, selections: Mapping[str, str] | None = None) -> None:
        self._values = {f.column: f.default for f in EVALUATION_FIELDS}
        for column, option in (selections or {}).items():
            self.select(column, option)

    @classmethod
    def defaults(cls) -> EvaluationForm:
        return cls()

    def select(self, column: str, option: str) -> None:
        field = _FIELDS_BY_COLUMN.get(column)
        if field is None:
            raise ValueError(f"Unknown evaluation column: {column!r}")
        if option not in field.options:
            raise ValueError(f"Invalid option {option!r} for {field.label} ({column})")
        self._values[column] = option

    def __getitem__(self, column: str) -> str:
        return self._values[column]

    def __iter__(self) -> Iterator[str]:
        return (f.column for f in EVALUATION_FIELDS)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"EvaluationForm({self._values!r})"

    def is_default(self) -> bool:
        return all(self._values[f.column] == f.default for f in EVALUATION_FIELDS)

    def findings(self) -> dict[str, str]:
        """Return non-default selections in field declaration order."""

        return {
            f.column: self._values[f.column]
            for f in EVALUATION_FIELDS
            if self._values[f.column] != f.default
        }

    def reasons(self) -> list[str]:
        return [
            REJECTION_REASONS[column][option]
            for column, option in self.findings().items()
            if option in REJECTION_REASONS.get(column, {})
        ]

    def decision(self, note: str | None = None) -> Decision:
        """Derive accept/reject from the form.

        Defaults accept with an empty note. Anything else rejects with the
        mapped reasons joined by newlines, unless ``note`` overrides them.
        """

        if self.is_default():
            return Decision(code=DecisionCode.ACCEPT, note="")
        composed = "\n".join(self.reasons())
        final_note = (note or "").strip() or composed or DEFAULT_REJECT_NOTE
        return Decision(code=DecisionCode.REJECT, note=final_note)
