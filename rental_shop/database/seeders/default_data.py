from ...constants import DEFAULT_SETTINGS, SEQ_INVOICE, SEQ_RENTAL


def seed(conn):
    # store settings row + counters; both are no-ops once present
    row = conn.execute("SELECT COUNT(*) AS n FROM app_settings").fetchone()
    if row and row["n"] == 0:
        conn.execute(
            """
            INSERT INTO app_settings(
                settings_id, store_name, tagline, store_address,
                store_phone, owner_name, logo_url, theme
            ) VALUES (1, :store_name, :tagline, :store_address,
                      :store_phone, :owner_name, :logo_url, :theme)
            """,
            DEFAULT_SETTINGS,
        )
    for name in (SEQ_RENTAL, SEQ_INVOICE):
        conn.execute("INSERT OR IGNORE INTO sequences(name, value) VALUES (?, 0)", (name,))
    conn.commit()
