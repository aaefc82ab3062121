# Alarm module
# Smart alarm scheduling and notification/vibration collaborators

from .scheduler import (
    SmartAlarmScheduler,
    AlarmState,
    AlarmPlan,
    next_target_time,
)
from .notifier import Notifier, LoggingNotifier

__all__ = [
    'SmartAlarmScheduler',
    'AlarmState',
    'AlarmPlan',
    'next_target_time',
    'Notifier',
    'LoggingNotifier',
]
