from .view_widget import SceneViewWidget, mount_flower_scene, mount_text_scene

__all__ = ["SceneViewWidget", "mount_flower_scene", "mount_text_scene"]
