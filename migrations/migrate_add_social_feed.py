#!/usr/bin/env python3
"""
Migration script to create the social feed schema on an existing database.

This script:
1. Creates the users table (or adds external_auth_id / display_name to an existing one)
2. Creates posts table
3. Creates likes table with a unique (post_id, user_id) constraint
4. Creates comments table
5. Creates follows table with unique pair and no-self-follow constraints
6. Removes duplicate likes/follows left by the old check-then-insert code
   before adding the unique constraints to tables that predate them
"""

import os
import sys
from sqlalchemy import create_engine, text, inspect

# Load environment variables
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass

# Get database URL
DATABASE_URL = os.environ.get("DATABASE_URL")
if not DATABASE_URL:
    print("ERROR: DATABASE_URL environment variable is required.")
    sys.exit(1)

# Fix Heroku postgres:// URL
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

engine = create_engine(DATABASE_URL)


def table_exists(connection, table_name):
    """Check if a table exists."""
    return table_name in inspect(connection).get_table_names()


def column_exists(connection, table_name, column_name):
    """Check if a column exists in a table."""
    columns = [col['name'] for col in inspect(connection).get_columns(table_name)]
    return column_name in columns


def constraint_exists(connection, table_name, constraint_name):
    """Check if a unique constraint exists on a table."""
    constraints = inspect(connection).get_unique_constraints(table_name)
    return any(c['name'] == constraint_name for c in constraints)


def dedupe_pairs(connection, table_name, first_column, second_column):
    """Keep the oldest row of each (first, second) pair; return rows removed."""
    result = connection.execute(text(f"""
        DELETE FROM {table_name} t
        USING {table_name} older
        WHERE t.{first_column} = older.{first_column}
          AND t.{second_column} = older.{second_column}
          AND (t.created_at, t.id) > (older.created_at, older.id)
    """))
    return result.rowcount


def run_migration():
    print("Running migration to create social feed tables...")
    print(f"Database: {engine.url.host}:{engine.url.port}/{engine.url.database}")
    print()

    with engine.connect() as connection:
        # 1. users
        print("1. Checking users table...")
        if not table_exists(connection, 'users'):
            print("   Creating users table...")
            connection.execute(text("""
                CREATE TABLE users (
                    id VARCHAR PRIMARY KEY,
                    external_auth_id VARCHAR UNIQUE,
                    display_name VARCHAR NOT NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """))
            connection.execute(text("CREATE INDEX ix_users_external_auth_id ON users(external_auth_id)"))
            print("   ✓ Created users table.")
        else:
            if not column_exists(connection, 'users', 'external_auth_id'):
                print("   Adding external_auth_id column to users table...")
                connection.execute(text("ALTER TABLE users ADD COLUMN external_auth_id VARCHAR"))
                connection.execute(text(
                    "CREATE UNIQUE INDEX ix_users_external_auth_id ON users(external_auth_id)"
                ))
                print("   ✓ Added external_auth_id column.")
            if not column_exists(connection, 'users', 'display_name'):
                # Rows from before provisioning get the same fallback new users get
                print("   Adding display_name column to users table...")
                connection.execute(text(
                    "ALTER TABLE users ADD COLUMN display_name VARCHAR NOT NULL DEFAULT 'Unknown'"
                ))
                print("   ✓ Added display_name column.")
            if not column_exists(connection, 'users', 'created_at'):
                print("   Adding created_at column to users table...")
                connection.execute(text(
                    "ALTER TABLE users ADD COLUMN created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP"
                ))
                print("   ✓ Added created_at column.")
            print("   ✓ Table 'users' up to date.")

        # 2. posts
        print("\n2. Checking posts table...")
        if not table_exists(connection, 'posts'):
            print("   Creating posts table...")
            connection.execute(text("""
                CREATE TABLE posts (
                    id VARCHAR PRIMARY KEY,
                    user_id VARCHAR NOT NULL,
                    image_url VARCHAR NOT NULL,
                    caption TEXT,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    CONSTRAINT fk_posts_user FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """))
            connection.execute(text("CREATE INDEX ix_posts_user_id ON posts(user_id)"))
            connection.execute(text("CREATE INDEX ix_posts_created_at ON posts(created_at)"))
            connection.execute(text("CREATE INDEX idx_posts_created_id ON posts(created_at, id)"))
            connection.execute(text("CREATE INDEX idx_posts_user_created ON posts(user_id, created_at)"))
            print("   ✓ Created posts table with indexes.")
        else:
            print("   ✓ Table 'posts' already exists.")

        # 3. likes
        print("\n3. Checking likes table...")
        if not table_exists(connection, 'likes'):
            print("   Creating likes table...")
            connection.execute(text("""
                CREATE TABLE likes (
                    id VARCHAR PRIMARY KEY,
                    post_id VARCHAR NOT NULL,
                    user_id VARCHAR NOT NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    CONSTRAINT fk_likes_post FOREIGN KEY (post_id) REFERENCES posts(id) ON DELETE CASCADE,
                    CONSTRAINT fk_likes_user FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
                    CONSTRAINT uq_like_post_user UNIQUE (post_id, user_id)
                )
            """))
            connection.execute(text("CREATE INDEX ix_likes_post_id ON likes(post_id)"))
            connection.execute(text("CREATE INDEX ix_likes_user_id ON likes(user_id)"))
            print("   ✓ Created likes table with indexes.")
        elif not constraint_exists(connection, 'likes', 'uq_like_post_user'):
            removed = dedupe_pairs(connection, 'likes', 'post_id', 'user_id')
            print(f"   Removed {removed} duplicate likes.")
            connection.execute(text(
                "ALTER TABLE likes ADD CONSTRAINT uq_like_post_user UNIQUE (post_id, user_id)"
            ))
            print("   ✓ Added uq_like_post_user constraint.")
        else:
            print("   ✓ Table 'likes' already exists.")

        # 4. comments
        print("\n4. Checking comments table...")
        if not table_exists(connection, 'comments'):
            print("   Creating comments table...")
            connection.execute(text("""
                CREATE TABLE comments (
                    id VARCHAR PRIMARY KEY,
                    post_id VARCHAR NOT NULL,
                    user_id VARCHAR NOT NULL,
                    content TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    CONSTRAINT fk_comments_post FOREIGN KEY (post_id) REFERENCES posts(id) ON DELETE CASCADE,
                    CONSTRAINT fk_comments_user FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
                )
            """))
            connection.execute(text("CREATE INDEX ix_comments_post_id ON comments(post_id)"))
            connection.execute(text("CREATE INDEX ix_comments_user_id ON comments(user_id)"))
            connection.execute(text("CREATE INDEX ix_comments_created_at ON comments(created_at)"))
            connection.execute(text("CREATE INDEX idx_comments_post_created ON comments(post_id, created_at)"))
            print("   ✓ Created comments table with indexes.")
        else:
            print("   ✓ Table 'comments' already exists.")

        # 5. follows
        print("\n5. Checking follows table...")
        if not table_exists(connection, 'follows'):
            print("   Creating follows table...")
            connection.execute(text("""
                CREATE TABLE follows (
                    id VARCHAR PRIMARY KEY,
                    follower_id VARCHAR NOT NULL,
                    following_id VARCHAR NOT NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    CONSTRAINT fk_follows_follower FOREIGN KEY (follower_id) REFERENCES users(id) ON DELETE CASCADE,
                    CONSTRAINT fk_follows_following FOREIGN KEY (following_id) REFERENCES users(id) ON DELETE CASCADE,
                    CONSTRAINT uq_follow_follower_following UNIQUE (follower_id, following_id),
                    CONSTRAINT ck_follow_not_self CHECK (follower_id <> following_id)
                )
            """))
            connection.execute(text("CREATE INDEX ix_follows_follower_id ON follows(follower_id)"))
            connection.execute(text("CREATE INDEX ix_follows_following_id ON follows(following_id)"))
            print("   ✓ Created follows table with indexes.")
        elif not constraint_exists(connection, 'follows', 'uq_follow_follower_following'):
            removed = dedupe_pairs(connection, 'follows', 'follower_id', 'following_id')
            print(f"   Removed {removed} duplicate follows.")
            connection.execute(text(
                "ALTER TABLE follows ADD CONSTRAINT uq_follow_follower_following UNIQUE (follower_id, following_id)"
            ))
            print("   ✓ Added uq_follow_follower_following constraint.")
        else:
            print("   ✓ Table 'follows' already exists.")

        # Commit all changes
        connection.commit()
        print("\n✓ Migration completed successfully!")


if __name__ == "__main__":
    try:
        run_migration()
    except Exception as e:
        print(f"\n✗ Migration failed with error: {str(e)}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
