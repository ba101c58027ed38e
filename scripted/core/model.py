"""In-memory data model: workspace, banks, registers, and addresses.

WHY: The editor, the resolver, and the exporter all walk the same
bank → register → address hierarchy and all need it in ascending id
order. Keeping the hierarchy in a few small dataclasses, with ordering
handled in one place, keeps every consumer deterministic.

HOW: Four dataclasses form the hierarchy:
  Register: address id → opaque string value
  Bank: register id → Register, plus a title
  Workspace: bank id → Bank, everything currently loaded
  Row: flattened (reg, addr, value) triple for display and filtering
Dicts keep insertion order, so iteration helpers sort by id explicitly.

RULES:
- All ids are non-negative ints; strings only appear via the codec
- Iteration (registers, addresses, rows, banks) is always ascending by id
- (reg, addr) pairs are unique within a bank by construction (dict keys)
- snapshot() returns deep copies that share no mutable state with the original
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

DEFAULT_TITLE = "untitled"


@dataclass(frozen=True)
class Row:
    """One address as shown in the editor: register id, address id, value."""

    reg: int
    addr: int
    value: str


@dataclass
class Register:
    """A numbered group of addresses inside a bank."""

    id: int
    addresses: Dict[int, str] = field(default_factory=dict)

    def items(self) -> List[Tuple[int, str]]:
        """Return (address id, value) pairs in ascending address order."""
        return sorted(self.addresses.items())

    def copy(self) -> Register:
        return Register(id=self.id, addresses=dict(self.addresses))


@dataclass
class Bank:
    """A titled collection of registers identified by a numeric id.

    RULES:
    - set_value() creates the register on first use
    - remove_value() prunes a register once its last address is removed
    """

    id: int
    title: str = DEFAULT_TITLE
    registers: Dict[int, Register] = field(default_factory=dict)

    def iter_registers(self) -> Iterator[Register]:
        for reg_id in sorted(self.registers):
            yield self.registers[reg_id]

    def get_value(self, reg: int, addr: int) -> Optional[str]:
        register = self.registers.get(reg)
        if register is None:
            return None
        return register.addresses.get(addr)

    def set_value(self, reg: int, addr: int, value: str) -> None:
        register = self.registers.get(reg)
        if register is None:
            register = Register(id=reg)
            self.registers[reg] = register
        register.addresses[addr] = value

    def remove_value(self, reg: int, addr: int) -> bool:
        """Remove one address. Returns False if it did not exist."""
        register = self.registers.get(reg)
        if register is None or addr not in register.addresses:
            return False
        del register.addresses[addr]
        if not register.addresses:
            del self.registers[reg]
        return True

    def rows(self) -> List[Row]:
        """Flatten to rows in ascending (register, address) order."""
        return [
            Row(reg=register.id, addr=addr, value=value)
            for register in self.iter_registers()
            for addr, value in register.items()
        ]

    def triples(self) -> set:
        """Return the set of (reg, addr, value) tuples, order-free."""
        return {(row.reg, row.addr, row.value) for row in self.rows()}

    def copy(self) -> Bank:
        return Bank(
            id=self.id,
            title=self.title,
            registers={reg_id: reg.copy() for reg_id, reg in self.registers.items()},
        )


@dataclass
class Workspace:
    """All banks currently loaded in memory, keyed by bank id."""

    banks: Dict[int, Bank] = field(default_factory=dict)

    def __contains__(self, bank_id: object) -> bool:
        return bank_id in self.banks

    def __len__(self) -> int:
        return len(self.banks)

    def get(self, bank_id: int) -> Optional[Bank]:
        return self.banks.get(bank_id)

    def put(self, bank: Bank) -> None:
        """Insert or replace a bank under its own id."""
        self.banks[bank.id] = bank

    def iter_banks(self) -> Iterator[Bank]:
        for bank_id in sorted(self.banks):
            yield self.banks[bank_id]

    def bank_list(self) -> List[Tuple[int, str]]:
        """Return (id, title) pairs in ascending id order."""
        return [(bank.id, bank.title) for bank in self.iter_banks()]

    def snapshot(self, bank_ids: Optional[Iterable[int]] = None) -> Workspace:
        """Deep-copy the named banks (or all banks) into a new Workspace.

        Ids that are not loaded are skipped silently.
        """
        ids = self.banks.keys() if bank_ids is None else bank_ids
        return Workspace(
            banks={bank_id: self.banks[bank_id].copy() for bank_id in ids if bank_id in self.banks}
        )
