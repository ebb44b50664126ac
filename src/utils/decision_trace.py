from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class GateTrace:
    name: str
    passed: bool
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DecisionTrace:
    """Record of the validation gates a single candidate went through."""

    symbol: str
    inputs: Dict[str, Any] = field(default_factory=dict)
    computed: Dict[str, Any] = field(default_factory=dict)
    gates: List[GateTrace] = field(default_factory=list)
    skip_reason: Optional[str] = None
    skip_details: Dict[str, Any] = field(default_factory=dict)

    def add_inputs(self, data: Dict[str, Any]) -> None:
        self.inputs.update(data)

    def add_computed(self, key: str, value: Any) -> None:
        self.computed[key] = value

    def record_gate(self, name: str, passed: bool, details: Dict[str, Any] | None = None) -> bool:
        gate_details = details or {}
        self.gates.append(GateTrace(name=name, passed=passed, details=gate_details))
        if not passed and not self.skip_reason:
            self.skip_reason = name
            self.skip_details = gate_details
        return passed

    def failed_gates(self) -> List[Dict[str, Any]]:
        return [
            {"name": gate.name, "details": gate.details}
            for gate in self.gates
            if not gate.passed
        ]
