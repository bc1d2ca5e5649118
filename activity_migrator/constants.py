"""Shared constants for the activity notification migrations."""

# Rows copied per invocation of the status consolidation migration.
MIGRATION_CHUNK_SIZE = 5000

# Default for the ``activity_update_batch_size`` setting.
DEFAULT_ACTIVITY_UPDATE_BATCH_SIZE = 5000

# Recipient id meaning "anonymous / unset"; never migrated.
ANONYMOUS_USER_ID = 0

# Table names in the CMS database
RECIPIENT_TABLE = "activity__field_activity_recipient_user"
STATUS_FIELD_TABLE = "activity__field_activity_status"
RELATED_ENTITY_TABLE = "activity__field_activity_entity"
ACTIVITY_TABLE = "activity"
NOTIFICATION_STATUS_TABLE = "activity_notification_status"

# Checkpoint handling
CHECKPOINT_SCHEMA_VERSION = 1
DEFAULT_CHECKPOINT_DIR = ".migration_checkpoints"

# Migration names, in execution order
STATUS_MIGRATION = "one_to_many_activities"
ORPHAN_SWEEP = "remove_activities_with_no_related_entities"
