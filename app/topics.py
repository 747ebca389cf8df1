"""Topic view of the Drive tree: topic → subtopic → post.

Only three levels are represented.  Anything deeper in Drive is not part of
this view; consumers browse it through the folder endpoint instead.
"""

from app.tree import DriveTree, NodeRecord


def _base(record: NodeRecord) -> dict:
    return {
        "id": record.id,
        "name": record.name or "",
        "type": record.kind.value,
        "link": record.link or "",
    }


def list_topics(tree: DriveTree) -> list[dict]:
    """Reshape *tree* into the topics payload used by the frontend."""
    topics = []
    for topic in tree.root_records():
        sub_topics = []
        for sub in tree.children(topic.id):
            posts = [
                {**_base(post), "url": post.link or ""}
                for post in tree.children(sub.id)
                if post.id  # posts without an id cannot be linked
            ]
            sub_topics.append({**_base(sub), "posts": posts})
        topics.append({**_base(topic), "subTopics": sub_topics})
    return topics
