from lms.modules.lifecycle.coordinator import UnitOfWork, unit_of_work

__all__ = ["UnitOfWork", "unit_of_work"]
