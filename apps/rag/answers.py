"""
Answer types produced by the composer and the citation verifier.
"""
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Reference:
    """A model-produced pointer to a fact. The excerpt may not be verbatim."""
    file: str
    excerpt: str = ""

    def to_dict(self) -> dict:
        return {"file": self.file, "excerpt": self.excerpt}


@dataclass(frozen=True)
class Citation:
    """A claim paired with the references that support it."""
    claim: str
    references: List[Reference] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "claim": self.claim,
            "references": [r.to_dict() for r in self.references],
        }


@dataclass(frozen=True)
class Answer:
    """Uncited commentary plus cited claims."""
    commentary: str
    citations: List[Citation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "commentary": self.commentary,
            "citations": [c.to_dict() for c in self.citations],
        }


@dataclass(frozen=True)
class VerifiedReference:
    reference: Reference
    exists: bool

    @property
    def file(self) -> str:
        return self.reference.file

    @property
    def excerpt(self) -> str:
        return self.reference.excerpt

    def to_dict(self) -> dict:
        data = self.reference.to_dict()
        data["exists"] = self.exists
        return data


@dataclass(frozen=True)
class VerifiedCitation:
    claim: str
    references: List[VerifiedReference] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "claim": self.claim,
            "references": [r.to_dict() for r in self.references],
        }


@dataclass(frozen=True)
class VerifiedAnswer:
    """An Answer with an existence outcome attached to every reference."""
    commentary: str
    citations: List[VerifiedCitation] = field(default_factory=list)

    @property
    def unverified_references(self) -> List[VerifiedReference]:
        return [
            ref
            for citation in self.citations
            for ref in citation.references
            if not ref.exists
        ]

    @property
    def all_verified(self) -> bool:
        return not self.unverified_references

    def to_dict(self) -> dict:
        return {
            "commentary": self.commentary,
            "citations": [c.to_dict() for c in self.citations],
            "allVerified": self.all_verified,
        }
