from src.models.users import UserProfile
from src.models.challenge import Challenge
from src.models.daily_progress import DailyProgress
from src.models.notification import Notification, NotificationLog, NotificationType
from src.models.notification_preference import NotificationPreference
from src.models.push_subscription import PushSubscription
from src.models.progress_photo import ProgressPhoto
from src.models.water_intake import WaterIntake
from src.models.workout_history import WalkHistory, WorkoutHistory
