from .repository import BranchRepository, PartnerRepository

__all__ = ["BranchRepository", "PartnerRepository"]
