import itertools
from datetime import datetime, timezone

from locust import HttpUser, task, between

SAMPLE_POSTS = [
    ("crisis", "I can't go on", "I want to end it all, nobody replies"),
    ("academic", "Exam stress", "I'm stressed and exhausted about finals"),
    ("relationships", "Roommate conflict", "We keep arguing about chores"),
]

_post_ids = itertools.count()


class EngineUser(HttpUser):
    wait_time = between(0.2, 1.0)

    def _post(self):
        n = next(_post_ids)
        category, title, content = SAMPLE_POSTS[n % len(SAMPLE_POSTS)]
        return {
            "id": f"load-{n}",
            "authorId": "load-user",
            "category": category,
            "title": title,
            "content": content,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }

    @task(3)
    def check(self):
        post = self._post()
        self.client.post("/escalation/check", json={"content": post["content"], "category": post["category"]})

    @task(2)
    def predict(self):
        self.client.post("/predict/escalation", json=self._post())

    @task(1)
    def analytics(self):
        self.client.get("/analytics/escalations")

    @task(1)
    def queue(self):
        self.client.get("/escalations/queue")

    @task(1)
    def readiness(self):
        self.client.get("/health/ready")
