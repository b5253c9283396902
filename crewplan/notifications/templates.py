from dataclasses import dataclass

from crewplan.models.effects import NotificationKind
from crewplan.models.entities import Mission, Technician


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    body: str


def _mission_block(mission: Mission) -> str:
    lines = [
        f"Mission: {mission.title}",
        f"Start: {mission.start:%d/%m/%Y %H:%M}",
        f"End: {mission.end:%d/%m/%Y %H:%M}",
    ]
    if mission.location:
        lines.append(f"Location: {mission.location}")
    lines.append(f"Fee: {mission.forfeit:.2f} EUR")
    return "\n".join(lines)


_SUBJECTS = {
    NotificationKind.PROPOSED: "New mission proposed: {title}",
    NotificationKind.ACCEPTED: "Mission confirmed: {title}",
    NotificationKind.REJECTED: "Mission declined: {title}",
    NotificationKind.CANCELLED: "Mission proposal withdrawn: {title}",
}

_INTROS = {
    NotificationKind.PROPOSED: "A new mission has been proposed to you. Please accept or decline it from your dashboard.",
    NotificationKind.ACCEPTED: "You have accepted the following mission. A pending billing entry has been created.",
    NotificationKind.REJECTED: "You have declined the following mission.",
    NotificationKind.CANCELLED: "The following mission proposal has been withdrawn by the planning team.",
}


def render(kind: NotificationKind, technician: Technician, mission: Mission) -> EmailTemplate:
    subject = _SUBJECTS[kind].format(title=mission.title)
    body = f"Hello {technician.name},\n\n{_INTROS[kind]}\n\n{_mission_block(mission)}\n"
    return EmailTemplate(subject=subject, body=body)
