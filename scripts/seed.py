"""Database seeder for local development and benchmark runs."""
import asyncio
import argparse
import random
import time
from datetime import timedelta

from postfeed.auth import create_access_token
from postfeed.config import settings
from postfeed.database import Database
from postfeed.domain import Comment, Post, Profile, utcnow
from postfeed.models import User
from postfeed.services.user_service import gravatar_url
from postfeed.store import PostStore

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
          "react", "typescript", "aws", "devops", "testing", "performance"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_posts = 100 if small else 5000
    max_comments = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_posts} posts, up to {max_comments} comments each")
    start = time.perf_counter()

    database = Database(settings.DATABASE_URL)
    await database.connect()
    await database.drop_all()
    await database.create_all()

    async with database.session() as session:
        users = []
        for i in range(num_users):
            email = f"user_{i:04d}@example.com"
            user = User(
                username=f"user_{i:04d}",
                email=email,
                display_name=f"User {i}",
                avatar=gravatar_url(email),
                bio=f"I am test user number {i}.",
            )
            session.add(user)
            users.append(user)
        await session.commit()
    print(f"  Created {len(users)} users")

    profiles = [Profile(user_id=u.id, name=u.display_name, avatar=u.avatar) for u in users]
    store = PostStore(database)
    total_comments = 0
    for i in range(num_posts):
        post = Post.compose(random.choice(profiles), f"Post {i}: notes on {random.choice(TOPICS)}")
        post.created_at = utcnow() - timedelta(minutes=random.randint(0, 60 * 24 * 30))
        for liker in random.sample(profiles, k=random.randint(0, min(8, len(profiles)))):
            post.add_like(liker.user_id)
        for _ in range(random.randint(0, max_comments)):
            post.add_comment(Comment.compose(random.choice(profiles), "Nice one!"))
            total_comments += 1
        await store.insert(post)
        if (i + 1) % 500 == 0:
            print(f"  {i + 1} posts inserted")

    await database.disconnect()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")
    print(f"\nx-auth-token for {users[0].username}:\n  {create_access_token(users[0].id)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the post feed database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
