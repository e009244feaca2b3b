from yoyo import step


steps = [
    step(
        """
        CREATE TABLE IF NOT EXISTS group_messages (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            group_id UUID NOT NULL REFERENCES study_groups(id) ON DELETE CASCADE,
            sender_id VARCHAR(255) NOT NULL,
            kind VARCHAR(10) NOT NULL DEFAULT 'text' CHECK (kind IN ('text', 'file')),
            body TEXT NOT NULL,
            attachment_ref TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
        )
        """,
        "DROP TABLE IF EXISTS group_messages"
    ),
    step(
        """
        CREATE INDEX IF NOT EXISTS idx_group_messages_group_created
        ON group_messages(group_id, created_at, id)
        """,
        "DROP INDEX IF EXISTS idx_group_messages_group_created"
    ),
]
