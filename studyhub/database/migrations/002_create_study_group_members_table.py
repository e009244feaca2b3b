from yoyo import step


steps = [
    step(
        """
        CREATE TABLE IF NOT EXISTS study_group_members (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            group_id UUID NOT NULL,
            user_id VARCHAR(255) NOT NULL,
            role VARCHAR(20) NOT NULL DEFAULT 'member',
            status VARCHAR(20) NOT NULL DEFAULT 'pending',
            requested_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp(),
            decided_at TIMESTAMPTZ,
            CONSTRAINT study_group_members_group_id_fkey
                FOREIGN KEY (group_id) REFERENCES study_groups(id) ON DELETE CASCADE,
            CONSTRAINT study_group_members_group_id_user_id_key
                UNIQUE (group_id, user_id),
            CONSTRAINT study_group_members_role_check
                CHECK (role IN ('leader', 'member')),
            CONSTRAINT study_group_members_status_check
                CHECK (status IN ('pending', 'active'))
        )
        """,
        "DROP TABLE IF EXISTS study_group_members"
    ),
    step(
        """
        CREATE INDEX IF NOT EXISTS idx_study_group_members_user
        ON study_group_members(user_id)
        """,
        "DROP INDEX IF EXISTS idx_study_group_members_user"
    ),
]
