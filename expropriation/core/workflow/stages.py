"""Case stages and the stage graph.

Stage Graph Diagram:

    ┌─────────┐   ┌────────────────┐         ┌──────────────┐
    │ AVALUO  │──►│ REVISION_LEGAL │──► ... ─►│ENTREGA_CHEQUE│ (terminal)
    └────▲────┘   └───────▲────────┘         └──────────────┘
         │                │
         │                │  backward returns allowed until terminal
         │                │
    ┌────┴──────┐   ┌─────┴─────┐
    │ CANCELLED │   │ SUSPENDED │ ← reachable from every stage
    └───────────┘   └───────────┘
     restart only    resume at any main stage past the first

The main sequence is ordered; special stages are an unordered exception lane.
A graph is an immutable value built once at process start and handed to
the workflow engine, so alternate workflows can be tested in isolation.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union


class CaseStage(str, Enum):
    """Stages of the default expropriation workflow."""

    # Main sequence
    AVALUO = "AVALUO"
    REVISION_LEGAL = "REVISION_LEGAL"
    CUMPLIMIENTO_NORMATIVO = "CUMPLIMIENTO_NORMATIVO"
    VALIDACION_TECNICA = "VALIDACION_TECNICA"
    VALIDACION_ADMINISTRATIVA = "VALIDACION_ADMINISTRATIVA"
    SANCION_INICIAL_MINISTRO = "SANCION_INICIAL_MINISTRO"
    PROGRAMACION_PAGO = "PROGRAMACION_PAGO"
    REVISION_LEGAL_FINAL = "REVISION_LEGAL_FINAL"
    CERTIFICACION_CONTRATO = "CERTIFICACION_CONTRATO"
    AUTORIZACION_PAGO = "AUTORIZACION_PAGO"
    REVISION_LIBRAMIENTO = "REVISION_LIBRAMIENTO"
    EMISION_PAGO = "EMISION_PAGO"
    ENTREGA_CHEQUE = "ENTREGA_CHEQUE"

    # Special stages
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


class DocumentType(str, Enum):
    """Document categories a stage expects."""

    LEGAL_DOCUMENT = "LEGAL_DOCUMENT"
    TECHNICAL_REPORT = "TECHNICAL_REPORT"
    PROPERTY_DOCUMENT = "PROPERTY_DOCUMENT"
    FINANCIAL_RECORD = "FINANCIAL_RECORD"
    CONTRACT_DOCUMENT = "CONTRACT_DOCUMENT"
    PHOTOGRAPH = "PHOTOGRAPH"
    OTHER = "OTHER"


SUSPENDED = CaseStage.SUSPENDED.value
CANCELLED = CaseStage.CANCELLED.value
REQUIRED_SPECIAL_STAGES = frozenset([SUSPENDED, CANCELLED])

StageKey = Union[str, CaseStage]


class StageGraphError(ValueError):
    """Raised when a stage graph configuration is inconsistent."""


def stage_key(stage: object) -> Optional[str]:
    """Normalize a stage identifier to its string key.

    Returns None for anything that cannot be a stage identifier.
    """
    if isinstance(stage, Enum):
        stage = stage.value
    if isinstance(stage, str) and stage:
        return stage
    return None


@dataclass(frozen=True)
class StageDefinition:
    """A single stage and its descriptive metadata."""

    key: str
    label: str = ""
    description: str = ""
    estimated_days: int = 0
    document_types: Tuple[str, ...] = ()
    required_checklist: Tuple[str, ...] = ()  # items to complete before moving forward

    def __post_init__(self):
        key = stage_key(self.key)
        if key is None:
            raise StageGraphError(f"Invalid stage key: {self.key!r}")
        object.__setattr__(self, "key", key)
        object.__setattr__(self, "label", self.label or key)
        object.__setattr__(self, "document_types", tuple(self.document_types))
        object.__setattr__(self, "required_checklist", tuple(self.required_checklist))
        if self.estimated_days < 0:
            raise StageGraphError(f"Stage {key} has negative estimated_days")


@dataclass(frozen=True)
class StageGraph:
    """Immutable workflow configuration: ordered main stages plus special stages."""

    main: Tuple[StageDefinition, ...]
    special: Tuple[StageDefinition, ...]
    _index: Mapping[str, int] = field(init=False, repr=False, compare=False)
    _definitions: Mapping[str, StageDefinition] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        main = tuple(self.main)
        special = tuple(self.special)
        object.__setattr__(self, "main", main)
        object.__setattr__(self, "special", special)

        if len(main) < 2:
            raise StageGraphError("Main sequence needs at least two stages")

        definitions: Dict[str, StageDefinition] = {}
        for definition in main + special:
            if definition.key in definitions:
                raise StageGraphError(f"Duplicate stage: {definition.key}")
            definitions[definition.key] = definition

        missing = REQUIRED_SPECIAL_STAGES - {d.key for d in special}
        if missing:
            raise StageGraphError(
                f"Special stages must include: {', '.join(sorted(missing))}"
            )

        object.__setattr__(
            self, "_index", MappingProxyType({d.key: i for i, d in enumerate(main)})
        )
        object.__setattr__(self, "_definitions", MappingProxyType(definitions))

    @classmethod
    def from_keys(cls, main: Iterable[StageKey], special: Iterable[StageKey]) -> "StageGraph":
        """Build a graph from bare stage identifiers."""
        return cls(
            main=tuple(StageDefinition(key) for key in main),
            special=tuple(StageDefinition(key) for key in special),
        )

    @property
    def main_keys(self) -> Tuple[str, ...]:
        return tuple(d.key for d in self.main)

    @property
    def special_keys(self) -> Tuple[str, ...]:
        return tuple(d.key for d in self.special)

    @property
    def first(self) -> str:
        return self.main[0].key

    @property
    def last(self) -> str:
        return self.main[-1].key

    @property
    def restart_stage(self) -> str:
        """Stage a cancelled case restarts at."""
        return self.first

    def __len__(self) -> int:
        return len(self.main)

    def __contains__(self, stage: object) -> bool:
        key = stage_key(stage)
        return key is not None and key in self._definitions

    def index_of(self, stage: object) -> Optional[int]:
        """Position in the main sequence, or None for special/unknown stages."""
        key = stage_key(stage)
        if key is None:
            return None
        return self._index.get(key)

    def is_main(self, stage: object) -> bool:
        return self.index_of(stage) is not None

    def is_special(self, stage: object) -> bool:
        key = stage_key(stage)
        return key in self._definitions and key not in self._index

    def definition(self, stage: object) -> Optional[StageDefinition]:
        key = stage_key(stage)
        if key is None:
            return None
        return self._definitions.get(key)


DEFAULT_MAIN_STAGES: Tuple[StageDefinition, ...] = (
    StageDefinition(
        CaseStage.AVALUO.value,
        "Avalúo",
        "Confirma existencia de título y evalúa valor de inmueble",
        10,
        ("LEGAL_DOCUMENT", "OTHER", "PHOTOGRAPH", "PROPERTY_DOCUMENT"),
    ),
    StageDefinition(
        CaseStage.REVISION_LEGAL.value,
        "Revisión Legal",
        "Revisa la legalidad del expediente",
        7,
        ("LEGAL_DOCUMENT", "OTHER", "TECHNICAL_REPORT", "PROPERTY_DOCUMENT"),
    ),
    StageDefinition(
        CaseStage.CUMPLIMIENTO_NORMATIVO.value,
        "Cumplimiento Normativo",
        "Verifica cumplimiento normativo del expediente",
        5,
        ("LEGAL_DOCUMENT", "OTHER", "PROPERTY_DOCUMENT"),
    ),
    StageDefinition(
        CaseStage.VALIDACION_TECNICA.value,
        "Validación Técnica",
        "Analiza expediente y validación técnica",
        8,
        ("TECHNICAL_REPORT", "PROPERTY_DOCUMENT", "PHOTOGRAPH"),
    ),
    StageDefinition(
        CaseStage.VALIDACION_ADMINISTRATIVA.value,
        "Validación Administrativa",
        "Valida aspectos financieros y coordina con departamentos",
        10,
        ("OTHER", "FINANCIAL_RECORD", "LEGAL_DOCUMENT"),
    ),
    StageDefinition(
        CaseStage.SANCION_INICIAL_MINISTRO.value,
        "Sanción Inicial de Ministro",
        "Esperando revisión y firma del Ministro",
        5,
        ("LEGAL_DOCUMENT", "OTHER", "TECHNICAL_REPORT"),
    ),
    StageDefinition(
        CaseStage.PROGRAMACION_PAGO.value,
        "Programación de Pago",
        "Programa pago y prepara documentación",
        7,
        ("FINANCIAL_RECORD", "OTHER", "PROPERTY_DOCUMENT"),
    ),
    StageDefinition(
        CaseStage.REVISION_LEGAL_FINAL.value,
        "Revisión Legal Final",
        "Revisa legalidad final y redacta contrato",
        10,
        ("LEGAL_DOCUMENT", "CONTRACT_DOCUMENT", "TECHNICAL_REPORT"),
    ),
    StageDefinition(
        CaseStage.CERTIFICACION_CONTRATO.value,
        "Certificación de Contrato",
        "Certifica contrato o expediente",
        15,
        ("LEGAL_DOCUMENT", "CONTRACT_DOCUMENT", "PROPERTY_DOCUMENT", "OTHER"),
    ),
    StageDefinition(
        CaseStage.AUTORIZACION_PAGO.value,
        "Autorización de Pago",
        "Revisa expediente certificado y elabora libramiento",
        5,
        ("FINANCIAL_RECORD", "OTHER", "LEGAL_DOCUMENT"),
    ),
    StageDefinition(
        CaseStage.REVISION_LIBRAMIENTO.value,
        "Revisión de Libramiento",
        "Revisa y valida libramiento de pago",
        7,
        ("FINANCIAL_RECORD", "OTHER", "TECHNICAL_REPORT"),
    ),
    StageDefinition(
        CaseStage.EMISION_PAGO.value,
        "Emisión de Pago",
        "Emite cheque a beneficiario",
        3,
        ("FINANCIAL_RECORD", "OTHER", "LEGAL_DOCUMENT"),
    ),
    StageDefinition(
        CaseStage.ENTREGA_CHEQUE.value,
        "Entrega de Cheque",
        "Custodia y entrega de cheque",
        2,
        ("OTHER", "LEGAL_DOCUMENT", "PHOTOGRAPH"),
    ),
)

DEFAULT_SPECIAL_STAGES: Tuple[StageDefinition, ...] = (
    StageDefinition(SUSPENDED, "Suspendido", "Caso temporalmente suspendido"),
    StageDefinition(CANCELLED, "Cancelado", "Caso cancelado"),
)


def default_stage_graph() -> StageGraph:
    """Build the standard expropriation workflow graph."""
    return StageGraph(main=DEFAULT_MAIN_STAGES, special=DEFAULT_SPECIAL_STAGES)
