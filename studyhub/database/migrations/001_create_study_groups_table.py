from yoyo import step


steps = [
    step(
        """
        CREATE TABLE IF NOT EXISTS study_groups (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(100) NOT NULL,
            description TEXT,
            subject VARCHAR(100),
            max_members INTEGER NOT NULL DEFAULT 5 CHECK (max_members > 0),
            visibility VARCHAR(20) NOT NULL DEFAULT 'public',
            allow_join_requests BOOLEAN NOT NULL DEFAULT TRUE,
            creator_id VARCHAR(255) NOT NULL,
            meeting_type VARCHAR(20) NOT NULL DEFAULT 'in_person',
            meeting_location VARCHAR(255),
            meeting_link VARCHAR(500),
            frequency VARCHAR(50),
            day_of_week VARCHAR(20),
            start_time VARCHAR(20),
            duration VARCHAR(50),
            created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
            updated_at TIMESTAMPTZ
        )
        """,
        "DROP TABLE IF EXISTS study_groups"
    ),
    step(
        """
        CREATE INDEX IF NOT EXISTS idx_study_groups_visibility_created
        ON study_groups(visibility, created_at DESC)
        """,
        "DROP INDEX IF EXISTS idx_study_groups_visibility_created"
    ),
]
