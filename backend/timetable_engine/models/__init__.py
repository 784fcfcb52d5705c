from timetable_engine.models.combined_block import CombinedBlockRow  # noqa: F401
from timetable_engine.models.schedule_entry import ScheduleEntryRow  # noqa: F401
from timetable_engine.models.school_directory import SchoolDirectoryRow  # noqa: F401
from timetable_engine.models.substitution_record import SubstitutionRecordRow  # noqa: F401
