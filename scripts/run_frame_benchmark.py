import os, sys, time
ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
os.environ.setdefault('QT_QPA_PLATFORM','offscreen')
from lilygalaxy.animation import AnimationDriver
from lilygalaxy.camera import PerspectiveCamera
from lilygalaxy.config import DEFAULTS
from lilygalaxy.scene import FlowerScene
from lilygalaxy.view.view_widget import build_draw_list

# Full-size field, default config
t0 = time.perf_counter()
scene = FlowerScene()
print('Build time: %.2fs' % (time.perf_counter() - t0))
print('Flowers:', len(scene.flowers), 'particles:', scene.particle_count())

cam_cfg = DEFAULTS['camera']['flowers']
camera = PerspectiveCamera(fov=cam_cfg['fov'], aspect=800 / 600, near=cam_cfg['near'], far=cam_cfg['far'],
                           position=cam_cfg['position'])
camera.look_at(0, 0, 0)
driver = AnimationDriver(scene, config=DEFAULTS['animation'])

w, h = 800, 600
step_times = []
draw_times = []
for frame in range(60):
    t0 = time.perf_counter()
    driver.step()
    t1 = time.perf_counter()
    items = build_draw_list(scene.root, camera, w, h)
    step_times.append(t1 - t0)
    draw_times.append(time.perf_counter() - t1)

print('Total frames:', driver.frame_count)
print('Mean step ms: %.1f' % (1000 * sum(step_times) / len(step_times)))
print('Mean draw list ms: %.1f' % (1000 * sum(draw_times) / len(draw_times)))
print('Draw items last frame:', len(items))
print('Polygons last frame:', sum(1 for it in items if it.polygon))

scene.destroy()
print('Particles after destroy:', scene.particle_count())
