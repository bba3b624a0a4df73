"""
Suspicion Classifiers - Process & Connection Heuristics

Scores a single process snapshot or a single network connection into a
severity level plus categorical reasons. Both classifiers are deterministic
given their inputs; the connection classifier may additionally consult an
optional narrator, which can only escalate the heuristic score.
"""
import re
from typing import FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from sysvital.core.config import (
    Config, DEFAULT_MALICIOUS_PORTS, DEFAULT_SAFE_PROCESSES, DEFAULT_WATCHLIST_COUNTRIES,
)
from sysvital.core.interfaces import Narrator
from sysvital.core.models import (
    RecommendedAction, SuspicionFinding, SuspicionLevel, SuspicionReason,
    ThreatAssessment, ThreatLevel,
)
from sysvital.core.schemas import ConnectionSnapshot, ProcessSnapshot
from sysvital.utils.logger import Logger

MIB = 1024 ** 2
GIB = 1024 ** 3

CPU_THRESHOLD = 80.0
MEMORY_THRESHOLD_BYTES = 2 * GIB
HANDLE_THRESHOLD = 10_000
TEMP_SEGMENTS = {"temp", "tmp"}

_SCORE_PATTERN = re.compile(r"SCORE:\s*([^|\n]*)", re.IGNORECASE)


class ThreatRules(BaseModel):
    """Read-only reference data for the connection classifier."""
    model_config = ConfigDict(frozen=True)

    malicious_ports: FrozenSet[int] = frozenset(DEFAULT_MALICIOUS_PORTS)
    watchlist_countries: FrozenSet[str] = frozenset(DEFAULT_WATCHLIST_COUNTRIES)
    safe_processes: Tuple[str, ...] = tuple(DEFAULT_SAFE_PROCESSES)

    @classmethod
    def from_config(cls, config: Config) -> "ThreatRules":
        return cls(
            malicious_ports=frozenset(config.malicious_ports),
            watchlist_countries=frozenset(config.watchlist_countries),
            safe_processes=tuple(config.safe_processes),
        )

    def is_safe_process(self, name: str) -> bool:
        lowered = name.lower()
        return any(safe in lowered for safe in self.safe_processes)


# --- PROCESOS ---
def _in_temp_directory(path: str) -> bool:
    segments = [s.lower() for s in re.split(r"[\\/]+", path) if s]
    # El último segmento es el ejecutable
    return any(s in TEMP_SEGMENTS for s in segments[:-1])


def classify_process(proc: ProcessSnapshot) -> Optional[SuspicionFinding]:
    """Returns a finding for a suspicious process, or None when nothing fired."""
    reasons: List[SuspicionReason] = []
    level = SuspicionLevel.LOW

    if proc.cpu_percent > CPU_THRESHOLD:
        reasons.append(SuspicionReason.HIGH_CPU_USAGE)
        level = max(level, SuspicionLevel.MEDIUM)

    if proc.memory_bytes > MEMORY_THRESHOLD_BYTES:
        reasons.append(SuspicionReason.HIGH_MEMORY_USAGE)
        level = max(level, SuspicionLevel.MEDIUM)

    if proc.is_signed is False and proc.exe_path:
        reasons.append(SuspicionReason.UNKNOWN_PUBLISHER)
        level = max(level, SuspicionLevel.MEDIUM)

    if proc.exe_path and _in_temp_directory(proc.exe_path):
        reasons.append(SuspicionReason.SUSPICIOUS_LOCATION)
        level = max(level, SuspicionLevel.HIGH)

    if proc.handle_count > HANDLE_THRESHOLD:
        reasons.append(SuspicionReason.SYSTEM_RESOURCE_ABUSE)

    if not reasons:
        return None

    action = RecommendedAction.TERMINATE if level >= SuspicionLevel.HIGH else RecommendedAction.MONITOR
    return SuspicionFinding(
        entity_ref=str(proc.pid),
        name=proc.name,
        level=level,
        reasons=frozenset(reasons),
        recommended_action=action,
        description=f"Process {proc.name} shows suspicious behavior: "
                    f"{', '.join(r.value for r in reasons)}",
    )


def classify_processes(processes: Iterable[ProcessSnapshot]) -> List[SuspicionFinding]:
    findings = []
    for proc in processes:
        finding = classify_process(proc)
        if finding is not None:
            findings.append(finding)
    return findings


# --- CONEXIONES ---
def threat_level_for(score: float) -> ThreatLevel:
    if score >= 80:
        return ThreatLevel.CRITICAL
    if score >= 60:
        return ThreatLevel.HIGH
    if score >= 40:
        return ThreatLevel.MEDIUM
    if score >= 20:
        return ThreatLevel.LOW
    return ThreatLevel.NONE


def score_connection(conn: ConnectionSnapshot, rules: ThreatRules) -> Tuple[float, List[str]]:
    """Additive heuristic score (0-100) and the reasons that contributed to it."""
    score = 0.0
    reasons: List[str] = []

    if conn.remote_port in rules.malicious_ports:
        score += 30
        reasons.append(f"Known malicious port {conn.remote_port}")

    total = conn.bytes_sent + conn.bytes_received
    if total > GIB:
        score += 20
        reasons.append("Transferred more than 1 GiB")
    elif total > 100 * MIB:
        score += 10
        reasons.append("Transferred more than 100 MiB")

    if conn.country.upper() in rules.watchlist_countries and not rules.is_safe_process(conn.process_name):
        score += 25
        reasons.append(f"Unrecognized process talking to watch-listed country {conn.country}")

    if not conn.process_name:
        score += 15
        reasons.append("Owning process could not be resolved")

    if conn.bytes_sent > conn.bytes_received * 3 and conn.bytes_sent > 50 * MIB:
        score += 30
        reasons.append("Upload-heavy traffic (possible exfiltration)")

    return min(score, 100.0), reasons


def parse_narrator_score(text: str) -> Optional[float]:
    """Extracts n from a 'SCORE: n | ...' reply. None when absent or unparsable."""
    if not text:
        return None
    match = _SCORE_PATTERN.search(text)
    if not match:
        return None
    try:
        return float(match.group(1).strip())
    except ValueError:
        return None


def _connection_prompt(conn: ConnectionSnapshot) -> str:
    return (
        "Analyze this network connection for potential security threats:\n\n"
        f"Process: {conn.process_name} (PID: {conn.pid})\n"
        f"Remote IP: {conn.remote_ip}\n"
        f"Remote Port: {conn.remote_port}\n"
        f"Country: {conn.country or 'Unknown'}\n"
        f"Protocol: {conn.protocol}\n"
        f"Data Sent: {conn.bytes_sent / MIB:.2f} MB\n"
        f"Data Received: {conn.bytes_received / MIB:.2f} MB\n\n"
        "Provide a threat score (0-100) and your reasoning.\n"
        "Format: SCORE: [number] | REASONING: [text]"
    )


async def assess_connection(conn: ConnectionSnapshot, rules: ThreatRules,
                            narrator: Optional[Narrator] = None) -> ThreatAssessment:
    """
    Scores a connection heuristically, optionally escalated by the narrator.

    The narrator's score replaces the heuristic only when it is higher. Any
    narrator failure leaves the heuristic result authoritative. Never raises.
    """
    score, reasons = score_connection(conn, rules)
    narrative = None

    if narrator is not None and narrator.is_configured:
        try:
            narrative = await narrator.complete(
                _connection_prompt(conn), {"temperature": 0.3, "max_tokens": 500}
            )
            ai_score = parse_narrator_score(narrative)
            if ai_score is not None and ai_score > score:
                reasons.append(f"Escalated by narrative analysis ({ai_score:.0f})")
                score = min(ai_score, 100.0)
        except Exception as e:
            Logger().warning(f"Narrative threat analysis failed for {conn.identity}: {e}")
            narrative = None

    return ThreatAssessment(
        entity_ref=conn.identity,
        score=score,
        level=threat_level_for(score),
        reasons=reasons,
        narrative=narrative or None,
    )
