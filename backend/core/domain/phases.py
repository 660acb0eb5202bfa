"""Construction phase templates and progress rules.

A project can be seeded with a standard sequence of phases. Progress moves a
phase through planned, in progress and complete unless a status is given.
"""
from dataclasses import dataclass
from enum import Enum


class PhaseTemplateType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    RENOVATION = "renovation"


@dataclass(frozen=True)
class PhaseTemplate:
    phase_number: int
    name: str
    phase_type: str
    description: str


RESIDENTIAL_PHASES = (
    PhaseTemplate(1, "Pre-Construction", "pre_construction",
                  "Permits, design finalisation, site surveys and pre-construction planning"),
    PhaseTemplate(2, "Site Preparation", "site_prep",
                  "Clearing, grading, excavation and utility rough-ins"),
    PhaseTemplate(3, "Foundation", "foundation",
                  "Footings, foundation walls and waterproofing"),
    PhaseTemplate(4, "Framing", "framing",
                  "Floor systems, wall framing, roof framing and sheathing"),
    PhaseTemplate(5, "MEP Rough-In", "mep_rough",
                  "Rough plumbing, electrical and HVAC installation"),
    PhaseTemplate(6, "Exterior Finishes", "exterior",
                  "Cladding, windows, doors, roofing and exterior trim"),
    PhaseTemplate(7, "Insulation & Plasterboard", "insulation_drywall",
                  "Insulation, plasterboard hanging, taping and finishing"),
    PhaseTemplate(8, "Interior Finishes", "interior",
                  "Flooring, cabinetry, trim, painting and fixtures"),
    PhaseTemplate(9, "Final Inspections", "inspections",
                  "Final building inspections and defect list items"),
    PhaseTemplate(10, "Handover", "closeout",
                  "Occupancy certificate, final clean and handover"),
)

COMMERCIAL_PHASES = (
    PhaseTemplate(1, "Design & Permits", "design",
                  "Architectural design, engineering and permit approval"),
    PhaseTemplate(2, "Demolition & Site Work", "demolition",
                  "Demolition of existing structures, site clearing and preparation"),
    PhaseTemplate(3, "Foundation & Structure", "structure",
                  "Foundation, structural steel or concrete and core systems"),
    PhaseTemplate(4, "MEP Systems", "mep",
                  "Mechanical, electrical and plumbing installation"),
    PhaseTemplate(5, "Building Envelope", "envelope",
                  "External walls, windows, roofing and weatherproofing"),
    PhaseTemplate(6, "Interior Fit-Out", "interior",
                  "Partitions, ceilings, flooring and finishes"),
    PhaseTemplate(7, "Systems Commissioning", "commissioning",
                  "Testing and balancing of building systems"),
    PhaseTemplate(8, "Practical Completion", "completion",
                  "Final inspections, defect list and occupancy certificate"),
)

RENOVATION_PHASES = (
    PhaseTemplate(1, "Planning & Design", "planning",
                  "Design, permits and planning for the renovation"),
    PhaseTemplate(2, "Demolition", "demolition",
                  "Selective demolition of existing finishes and systems"),
    PhaseTemplate(3, "Structural & Systems", "structural",
                  "Structural changes and system upgrades"),
    PhaseTemplate(4, "Rough-In Work", "rough_in",
                  "New plumbing, electrical and HVAC rough-in"),
    PhaseTemplate(5, "Finishes", "finishes",
                  "Plasterboard, flooring, cabinetry and finish work"),
    PhaseTemplate(6, "Completion", "completion",
                  "Final inspections, testing and closeout"),
)

TEMPLATES = {
    PhaseTemplateType.RESIDENTIAL: RESIDENTIAL_PHASES,
    PhaseTemplateType.COMMERCIAL: COMMERCIAL_PHASES,
    PhaseTemplateType.RENOVATION: RENOVATION_PHASES,
}

# Template used when none is requested, by project type
DEFAULT_TEMPLATE_FOR_PROJECT_TYPE = {
    "new_build": PhaseTemplateType.RESIDENTIAL,
    "development": PhaseTemplateType.COMMERCIAL,
    "renovation": PhaseTemplateType.RENOVATION,
    "maintenance": PhaseTemplateType.RENOVATION,
}


def template_for(template_type: PhaseTemplateType) -> tuple[PhaseTemplate, ...]:
    return TEMPLATES[template_type]


def default_template_type(project_type: str) -> PhaseTemplateType:
    return DEFAULT_TEMPLATE_FOR_PROJECT_TYPE.get(project_type, PhaseTemplateType.RENOVATION)


def status_for_progress(progress: int) -> str:
    """Status implied by a progress percentage."""
    if progress <= 0:
        return "planned"
    if progress >= 100:
        return "complete"
    return "in_progress"
